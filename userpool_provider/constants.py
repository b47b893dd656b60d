# values interpreted as boolean flags in environment variables
TRUE_STRINGS = ("1", "true", "True")
FALSE_STRINGS = ("0", "false", "False")

# strings with valid log levels for PROVIDER_LOG
LOG_LEVELS = ("trace", "debug", "info", "warn", "error", "warning")
PROVIDER_LOG_TRACE = "trace"
TRACE_LOG_LEVELS = [PROVIDER_LOG_TRACE]

# AWS defaults
DEFAULT_AWS_ACCOUNT_ID = "000000000000"
AWS_REGION_US_EAST_1 = "us-east-1"

# max pool connections of the boto clients created by the client factory
MAX_POOL_CONNECTIONS = 150

# entry point namespace of the resource provider plugins
RESOURCE_PROVIDER_NAMESPACE = "userpool_provider.resource_providers"

# Cognito user pool constants (mirroring the cognito-idp API enums)
USER_POOL_MFA_OFF = "OFF"
USER_POOL_MFA_ON = "ON"
USER_POOL_MFA_OPTIONAL = "OPTIONAL"
USER_POOL_MFA_TYPES = (USER_POOL_MFA_OFF, USER_POOL_MFA_ON, USER_POOL_MFA_OPTIONAL)

ALIAS_ATTRIBUTE_TYPES = ("email", "phone_number", "preferred_username")
VERIFIED_ATTRIBUTE_TYPES = ("email", "phone_number")
