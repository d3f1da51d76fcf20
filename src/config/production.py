from .config import BaseConfig


class ProductionConfig(BaseConfig):
    DEBUG = False
