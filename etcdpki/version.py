import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version

logger = logging.getLogger(__name__)


def get_version() -> str:
    """Installed package version, or 'dev' when running from a source checkout."""
    try:
        return version("etcdpki")
    except PackageNotFoundError:
        logger.debug("etcdpki package metadata not found, returning 'dev'.")
        return "dev"


def get_version_string() -> str:
    return f"etcdpki, version {get_version()}"
