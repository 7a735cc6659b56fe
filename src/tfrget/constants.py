"""
Constants and configuration values for tfrget.

This module contains the registry protocol constants, environment variable
names, timeouts, and other fixed values used throughout the application.
"""

# Registry hosts
DEFAULT_REGISTRY_DOMAIN = "registry.terraform.io"
DEFAULT_OPENTOFU_REGISTRY_DOMAIN = "registry.opentofu.org"

# Module registry protocol
SERVICE_DISCOVERY_PATH = "/.well-known/terraform.json"
MODULES_SERVICE_KEY = "modules.v1"
VERSION_QUERY_KEY = "version"
TERRAFORM_GET_HEADER = "X-Terraform-Get"
LOCATION_BODY_KEY = "location"
REGISTRY_URL_SCHEME = "tfr"
RELATIVE_LOCATION_PREFIXES = ("/", "./", "../")

# Environment variable names
AUTH_TOKEN_ENV_VAR = "TG_TF_REGISTRY_TOKEN"
DEFAULT_REGISTRY_ENV_VAR = "TG_TF_DEFAULT_REGISTRY_HOST"
HOST_TOKEN_ENV_PREFIX = "TF_TOKEN_"
LOG_LEVEL_ENV_VAR = "TFRGET_LOG_LEVEL"

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 8192
HTTP_POOL_CONNECTIONS = 10
HTTP_POOL_MAXSIZE = 10

# Staging and copy
STAGING_DIR_PREFIX = "getter"
MANIFEST_FILE_NAME = ".tgmanifest"
OWNER_WRITE_GLOBAL_READ_EXECUTE_PERMS = 0o755

# Archive handling
ARCHIVE_QUERY_KEY = "archive"
ZIP_EXTENSION = ".zip"
TAR_EXTENSIONS = (".tar.gz", ".tgz", ".tar")

# Configuration file names
CONFIG_DIR_NAME = "tfrget"
CONFIG_FILE_NAME = "tfrget.yaml"
CREDENTIALS_FILE_NAME = "credentials.tfrc.json"
TERRAFORM_USER_DIR = ".terraform.d"

# Supported implementation dialects
TERRAFORM_IMPL = "terraform"
OPENTOFU_IMPL = "opentofu"

# Logging configuration
LOGGER_NAME = "tfrget"
LOG_FILE_NAME = "tfrget.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
