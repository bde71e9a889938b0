"""
Environment loading tool

Loads the project .env file so that MongoDB, Elasticsearch and sync settings
are available as environment variables before any client is created.
"""

import logging
import os
from typing import Optional
from dotenv import load_dotenv

from common_utils.project_path import PROJECT_DIR

# Environment variables are not loaded yet, so get_logger cannot be used here
logger = logging.getLogger(__name__)


def load_env_file(
    env_file_name: str = ".env", check_env_var: Optional[str] = None
) -> bool:
    """
    Load .env file

    Args:
        env_file_name: .env filename, resolved against the project root
        check_env_var: Environment variable name to check, used to determine if environment has been loaded

    Returns:
        bool: Whether environment variables were successfully loaded
    """
    env_file_path = PROJECT_DIR / env_file_name

    if not env_file_path.exists():
        logger.warning(".env file does not exist: %s", env_file_path)
        return False

    try:
        load_dotenv(env_file_path)
        logger.debug("Successfully loaded .env file: %s", env_file_path)
    except (IOError, OSError) as e:
        logger.error("Failed to load .env file: %s", e)
        return False

    if check_env_var and not os.getenv(check_env_var):
        logger.error(
            "Please ensure that the %s environment variable is set", check_env_var
        )
        return False
    return True
