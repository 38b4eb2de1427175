"""
slidepack - Configuration
Settings are read from the environment, optionally seeded from .env.slidepack
"""

import os
from typing import NamedTuple, Optional

import pptx
from dotenv import load_dotenv

load_dotenv('.env.slidepack')

DEFAULT_TEMPLATE_PATH = os.path.join(os.path.dirname(pptx.__file__), 'templates', 'default.pptx')

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


class Settings(NamedTuple):
    """Resolved runtime settings; explicit write() arguments take precedence"""

    template_path: str = DEFAULT_TEMPLATE_PATH
    open_after_write: bool = True
    log_level: str = 'INFO'
    log_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'Settings':
        """Build settings from SLIDEPACK_* environment variables"""
        return cls(
            template_path=os.getenv('SLIDEPACK_TEMPLATE_PATH') or DEFAULT_TEMPLATE_PATH,
            open_after_write=_env_flag('SLIDEPACK_OPEN_AFTER_WRITE', True),
            log_level=(os.getenv('SLIDEPACK_LOG_LEVEL') or 'INFO').upper(),
            log_dir=os.getenv('SLIDEPACK_LOG_DIR') or None,
        )
