"""
Environment bootstrap for the property listings service.

This module handles the loading of environment variables from .env files before
settings are read, and reports which external collaborators are configured.
"""
import os
import logging
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def mask_secret(value: Optional[str]) -> str:
    """
    Mask a secret for logging, keeping only the first and last four characters.

    Args:
        value: The secret to mask

    Returns:
        str: Masked representation safe to write to logs
    """
    if not value:
        return "[NOT SET]"
    if len(value) <= 8:
        return "[KEY]"
    return f"{value[:4]}...{value[-4:]}"


def initialize_environment() -> bool:
    """
    Load environment variables from the first .env file found.

    Looks next to the backend package first, then in the repository root, then
    in the current working directory. Variables already present in the process
    environment are not overridden.

    Returns:
        bool: True if a .env file was loaded, False otherwise.
    """
    backend_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    possible_paths: List[str] = [
        os.path.join(backend_dir, '.env'),
        os.path.join(os.path.dirname(backend_dir), '.env'),
        '.env'
    ]

    env_loaded = False
    for path in possible_paths:
        if os.path.exists(path):
            logger.info(f"Loading environment variables from: {path}")
            load_dotenv(dotenv_path=path, override=False)
            env_loaded = True
            break

    if not env_loaded:
        logger.debug("No .env file found, using process environment only")

    supabase_url = os.environ.get("SUPABASE_URL")
    supabase_key = os.environ.get("SUPABASE_KEY")
    if supabase_url:
        logger.info(f"Datastore configured at {supabase_url} (key: {mask_secret(supabase_key)})")
    else:
        logger.warning("SUPABASE_URL not set; datastore calls will fail until it is configured")

    if os.environ.get("REDIS_URL"):
        logger.info("Remote cache configured via REDIS_URL")
    else:
        logger.info("REDIS_URL not set; using the in-process cache store")

    return env_loaded
