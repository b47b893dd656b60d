import logging
import os
from typing import Any, List, Tuple, Union

import dotenv

from userpool_provider.constants import FALSE_STRINGS, LOG_LEVELS, TRACE_LOG_LEVELS, TRUE_STRINGS

LOG = logging.getLogger(__name__)


def eval_log_type(env_var_name: str) -> Union[str, bool]:
    """Get the log type from environment variable"""
    log_type = os.environ.get(env_var_name, "").lower().strip()
    return log_type if log_type in LOG_LEVELS else False


def is_env_true(env_var_name: str) -> bool:
    """Whether the given environment variable has a truthy value."""
    return os.environ.get(env_var_name, "").lower().strip() in TRUE_STRINGS


def is_env_not_false(env_var_name: str) -> bool:
    """Whether the given environment variable is empty or has a truthy value."""
    return os.environ.get(env_var_name, "").lower().strip() not in FALSE_STRINGS


def load_environment(profiles: str = None, env=os.environ) -> List[str]:
    """Loads the environment variables from ~/.userpool-provider/{profile}.env, for each profile listed in the
    profiles.
    :param env: environment to load profile to. Defaults to `os.environ`
    :param profiles: a comma separated list of profiles to load (defaults to "default")
    :returns str: the list of the actually loaded profiles (might be the fallback)
    """
    if not profiles:
        profiles = "default"

    profiles = [profile.strip() for profile in profiles.split(",")]
    environment = {}

    for profile in profiles:
        path = os.path.join(CONFIG_DIR, f"{profile}.env")
        if not os.path.exists(path):
            continue
        environment.update(dotenv.dotenv_values(path))

    for k, v in environment.items():
        # we do not want to override the environment
        if k not in env and v is not None:
            env[k] = v

    return profiles


# the configuration profile to load
CONFIG_PROFILE = os.environ.get("CONFIG_PROFILE", "").strip()

# host configuration directory
CONFIG_DIR = os.environ.get("CONFIG_DIR", os.path.expanduser("~/.userpool-provider"))

# keep this on top to populate environment
LOADED_PROFILES = load_environment(CONFIG_PROFILE)

# log level of the provider loggers (trace, debug, info, warn, error)
PROVIDER_LOG = eval_log_type("PROVIDER_LOG")
DEBUG = is_env_true("DEBUG") or PROVIDER_LOG in TRACE_LOG_LEVELS

# endpoint override for all boto clients, e.g. to point the provider at an emulator
AWS_ENDPOINT_URL = os.environ.get("AWS_ENDPOINT_URL", "").strip() or None

# retries are the orchestration engine's concern, so boto clients do not retry unless DISABLE_BOTO_RETRIES=0
DISABLE_BOTO_RETRIES = is_env_not_false("DISABLE_BOTO_RETRIES")

# whether desired states are validated against the resource schema before they reach a provider
VALIDATE_RESOURCE_PROPERTIES = is_env_not_false("VALIDATE_RESOURCE_PROPERTIES")

# whether failed provider operations are logged with their traceback
CFN_VERBOSE_ERRORS = is_env_true("CFN_VERBOSE_ERRORS")

CONFIG_ENV_VARS = [
    "AWS_ENDPOINT_URL",
    "CFN_VERBOSE_ERRORS",
    "CONFIG_DIR",
    "CONFIG_PROFILE",
    "DEBUG",
    "DISABLE_BOTO_RETRIES",
    "PROVIDER_LOG",
    "VALIDATE_RESOURCE_PROPERTIES",
]


def is_trace_logging_enabled():
    if PROVIDER_LOG:
        log_level = str(PROVIDER_LOG).upper()
        return log_level.lower() in TRACE_LOG_LEVELS
    return False


def collect_config_items() -> List[Tuple[str, Any]]:
    """Returns a list of key-value tuples of provider configuration values."""
    result = []
    for k in sorted(CONFIG_ENV_VARS):
        result.append((k, globals().get(k)))
    return result
