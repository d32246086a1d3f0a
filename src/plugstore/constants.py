"""
Constants and configuration values for Plugstore.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# Remote data sources
DATA_GIST_RAW_BASE = (
    "https://gist.githubusercontent.com/alex-popov-tech/"
    "93dcd3ce38cbc7a0b3245b9b59b56c9b/raw"
)
DEFAULT_DATA_SOURCE_URL = f"{DATA_GIST_RAW_BASE}/store.nvim-repos.json"
GITHUB_RAW_BASE = "https://raw.githubusercontent.com"
GITLAB_BASE = "https://gitlab.com"

# Plugin managers with an install catalogue
LAZY_MANAGER = "lazy.nvim"
VIM_PACK_MANAGER = "vim.pack"
SUPPORTED_MANAGERS = (LAZY_MANAGER, VIM_PACK_MANAGER)
DEFAULT_INSTALL_CATALOGUE_URLS = {
    LAZY_MANAGER: f"{DATA_GIST_RAW_BASE}/lazy.nvim.json",
    VIM_PACK_MANAGER: f"{DATA_GIST_RAW_BASE}/vim.pack.json",
}

# Repository sources
SOURCE_GITHUB = "github"
SOURCE_GITLAB = "gitlab"
DEFAULT_SOURCE = SOURCE_GITHUB

# README reference defaults
DEFAULT_README_BRANCH = "HEAD"
DEFAULT_README_PATH = "README.md"

# Network timeouts (in seconds)
GET_REQUEST_TIMEOUT = 10
HEAD_REQUEST_TIMEOUT = 5
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 299
ERROR_BODY_PREVIEW_CHARS = 200

# Cache layout
APP_NAME = "plugstore"
DATABASE_CACHE_FILE = "db.json"
README_CACHE_SUFFIX = ".md"
CATALOGUE_CACHE_SUFFIX = ".json"

# Installed plugins lock file
LOCK_FILE_NAME = "lazy-lock.json"
EDITOR_APP_NAME = "nvim"

# Configuration file
CONFIG_FILE_NAME = "plugstore.yaml"

# Logging configuration
LOGGER_NAME = "plugstore"
LOG_FILE_NAME = "plugstore.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Environment variable names
LOG_LEVEL_ENV_VAR = "PLUGSTORE_LOG_LEVEL"
