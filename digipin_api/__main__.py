# digipin_api/__main__.py
import uvicorn

from digipin_api import config


def main():
    uvicorn.run("digipin_api.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
