from .config import BaseConfig
from .dev_config import DevConfig
from .production import ProductionConfig
from .testing_config import TestingConfig

CONFIGS = {
    "development": DevConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(env_name):
    return CONFIGS.get(env_name or "development", DevConfig)
