# digipin_api/main.py
import io
import time
from typing import Optional, Union

import pandas as pd
import yaml
from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from pydantic import BaseModel, StrictBool, StrictFloat, StrictInt
from starlette.exceptions import HTTPException as StarletteHTTPException

from digipin_api import __version__, config
from digipin_api.digipin import (DigiPinError, format_digipin, get_digipin,
                                 get_lat_lng_from_digipin, is_valid_digipin)
from digipin_api.processing import (MissingColumnError, run_decoding_pipeline,
                                    run_encoding_pipeline)

logger = config.configure_logging()

# JSON numbers and booleans reach the codec untouched; only strings are parsed here
Coordinate = Optional[Union[StrictBool, StrictInt, StrictFloat, str]]


class EncodeRequest(BaseModel):
    latitude: Coordinate = None
    longitude: Coordinate = None
    includeHyphens: bool = True


class DecodeRequest(BaseModel):
    digipin: Optional[str] = None


def _parse_coordinate(value):
    if not isinstance(value, str):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid latitude or longitude") from None


def _missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# --- Handlers shared by the GET and POST routes ---

def encode_coordinates(latitude, longitude, include_hyphens: bool = True) -> dict:
    if _missing(latitude) or _missing(longitude):
        raise HTTPException(status_code=400, detail="Latitude and longitude are required")
    lat = _parse_coordinate(latitude)
    lon = _parse_coordinate(longitude)
    return {"digipin": get_digipin(lat, lon, include_hyphens=include_hyphens)}


def decode_digipin(digipin) -> dict:
    if _missing(digipin):
        raise HTTPException(status_code=400, detail="DigiPin code is required")
    if not is_valid_digipin(digipin):
        raise HTTPException(status_code=400, detail="Invalid DigiPin format")
    # get_lat_lng_from_digipin validates again on its own
    return get_lat_lng_from_digipin(digipin)


def _csv_download(df: pd.DataFrame, filename: str) -> StreamingResponse:
    output_stream = io.StringIO()
    df.to_csv(output_stream, index=False)
    output_stream.seek(0)
    return StreamingResponse(
        iter([output_stream.read()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


def _run_pipeline(pipeline, upload: UploadFile, **kwargs) -> pd.DataFrame:
    try:
        return pipeline(upload.file, **kwargs)
    except MissingColumnError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Could not read CSV upload: {e}")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    docs_enabled = config.ENABLE_DOCS
    prefix = config.API_PREFIX

    app = FastAPI(
        title="DigiPin API",
        version=__version__,
        description="Encode coordinates into DIGIPIN codes and decode them back.",
        openapi_url="/openapi.json" if docs_enabled else None,
        docs_url="/api-docs" if docs_enabled else None,
        redoc_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info("%s %s failed %.1fms", request.method, request.url.path, elapsed_ms)
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s %d %.1fms", request.method, request.url.path,
                    response.status_code, elapsed_ms)
        return response

    # --- Error translation ---

    @app.exception_handler(DigiPinError)
    async def digipin_error_handler(request: Request, exc: DigiPinError):
        logger.debug("Rejected %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal Server Error"},
        )

    # --- Routes ---

    @app.get("/", response_class=PlainTextResponse)
    async def read_root():
        return "Hello World! Welcome to the DigiPin API. Visit /api-docs for documentation."

    @app.get("/health", tags=["system"])
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    if docs_enabled:
        @app.get("/openapi.yaml", include_in_schema=False)
        async def openapi_yaml():
            document = yaml.safe_dump(app.openapi(), sort_keys=False, allow_unicode=True)
            return Response(content=document, media_type="application/yaml")

    @app.get(f"{prefix}/encode", tags=["digipin"])
    async def encode_get(
        latitude: Optional[str] = Query(None),
        longitude: Optional[str] = Query(None),
        includeHyphens: bool = Query(True),
    ):
        """Encode coordinates passed in the query string."""
        return encode_coordinates(latitude, longitude, includeHyphens)

    @app.post(f"{prefix}/encode", tags=["digipin"])
    async def encode_post(payload: Optional[EncodeRequest] = None):
        """Encode coordinates passed as a JSON body."""
        payload = payload or EncodeRequest()
        return encode_coordinates(payload.latitude, payload.longitude, payload.includeHyphens)

    @app.get(f"{prefix}/decode", tags=["digipin"])
    async def decode_get(digipin: Optional[str] = Query(None)):
        """Decode a DigiPin passed in the query string."""
        return decode_digipin(digipin)

    @app.post(f"{prefix}/decode", tags=["digipin"])
    async def decode_post(payload: Optional[DecodeRequest] = None):
        """Decode a DigiPin passed as a JSON body."""
        payload = payload or DecodeRequest()
        return decode_digipin(payload.digipin)

    @app.get(f"{prefix}/validate", tags=["digipin"])
    async def validate(digipin: Optional[str] = Query(None)):
        valid = is_valid_digipin(digipin)
        return {
            "digipin": digipin,
            "valid": valid,
            "formatted": format_digipin(digipin) if valid else None,
        }

    @app.post(f"{prefix}/encode-batch", tags=["batch"])
    async def encode_batch(
        file: UploadFile = File(...),
        includeHyphens: bool = Query(True),
    ):
        """
        Adds a DigiPin column to an uploaded CSV of coordinates.
        Rows that cannot be encoded are left blank.
        """
        result_df = _run_pipeline(run_encoding_pipeline, file, include_hyphens=includeHyphens)
        return _csv_download(result_df, "digipin_encoded.csv")

    @app.post(f"{prefix}/decode-batch", tags=["batch"])
    async def decode_batch(file: UploadFile = File(...)):
        """Adds decoded latitude/longitude columns to an uploaded CSV of codes."""
        result_df = _run_pipeline(run_decoding_pipeline, file)
        return _csv_download(result_df, "digipin_decoded.csv")

    logger.info("DigiPin API ready under %s", prefix)
    return app


app = create_app()
