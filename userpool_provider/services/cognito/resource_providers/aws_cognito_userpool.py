from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, TypedDict

from botocore.exceptions import BotoCoreError, ClientError

import userpool_provider.provider_utils as util
from userpool_provider.constants import (
    ALIAS_ATTRIBUTE_TYPES,
    USER_POOL_MFA_TYPES,
    VERIFIED_ATTRIBUTE_TYPES,
)
from userpool_provider.exceptions import (
    ConfigurationShapeError,
    InvalidPropertyError,
    MissingIdentifierError,
    RemoteOperationError,
)
from userpool_provider.resource_provider import (
    OperationStatus,
    ProgressEvent,
    ResourceProvider,
    ResourceRequest,
    register_resource_provider,
)

LOG = logging.getLogger(__name__)

RESOURCE_NAME = "Cognito User Pool"


class EmailConfiguration(TypedDict):
    ReplyToEmailAddress: Optional[str]
    SourceArn: Optional[str]


class SmsConfiguration(TypedDict):
    ExternalId: Optional[str]
    SnsCallerArn: Optional[str]


class CognitoUserPoolProperties(TypedDict):
    UserPoolName: Optional[str]
    AliasAttributes: Optional[list[str]]
    Arn: Optional[str]
    AutoVerifiedAttributes: Optional[list[str]]
    EmailConfiguration: Optional[EmailConfiguration]
    EmailVerificationMessage: Optional[str]
    EmailVerificationSubject: Optional[str]
    MfaConfiguration: Optional[str]
    SmsAuthenticationMessage: Optional[str]
    SmsConfiguration: Optional[SmsConfiguration]
    SmsVerificationMessage: Optional[str]
    UserPoolId: Optional[str]
    UserPoolTags: Optional[dict[str, str]]


# string properties that map 1:1 onto the request parameter of the same name
MESSAGE_PROPERTIES = [
    "EmailVerificationMessage",
    "EmailVerificationSubject",
    "SmsAuthenticationMessage",
    "SmsVerificationMessage",
]

MUTABLE_PROPERTIES = [
    "AutoVerifiedAttributes",
    "EmailConfiguration",
    *MESSAGE_PROPERTIES,
    "MfaConfiguration",
    "SmsConfiguration",
    "UserPoolTags",
]

EMAIL_CONFIGURATION_KEYS = ["ReplyToEmailAddress", "SourceArn"]
SMS_CONFIGURATION_KEYS = ["ExternalId", "SnsCallerArn"]


@register_resource_provider
class CognitoUserPoolProvider(ResourceProvider[CognitoUserPoolProperties]):
    TYPE = "AWS::Cognito::UserPool"
    SCHEMA = util.get_schema_path(Path(__file__))

    def create(
        self,
        request: ResourceRequest[CognitoUserPoolProperties],
    ) -> ProgressEvent[CognitoUserPoolProperties]:
        """
        Create a new resource.

        Primary identifier fields:
          - /properties/UserPoolId

        Required properties:
          - UserPoolName

        Create-only properties:
          - /properties/UserPoolName
          - /properties/AliasAttributes

        Read-only properties:
          - /properties/UserPoolId
          - /properties/Arn

        IAM permissions required:
          - cognito-idp:CreateUserPool
          - cognito-idp:DescribeUserPool
        """
        model = request.desired_state
        cognito = request.aws_client_factory.cognito_idp

        if not model.get("UserPoolName"):
            raise ConfigurationShapeError("UserPoolName is required")
        self._validate_enum_properties(model)

        # defaults
        if not model.get("MfaConfiguration"):
            model["MfaConfiguration"] = self._default("MfaConfiguration")

        params = {"PoolName": model["UserPoolName"]}
        for list_property in ("AliasAttributes", "AutoVerifiedAttributes"):
            if values := model.get(list_property):
                params[list_property] = list(values)
        if (email_configuration := self._get_email_configuration(model)) is not None:
            params["EmailConfiguration"] = email_configuration
        for message_property in MESSAGE_PROPERTIES:
            if value := model.get(message_property):
                params[message_property] = value
        params["MfaConfiguration"] = model["MfaConfiguration"]
        if (sms_configuration := self._get_sms_configuration(model)) is not None:
            params["SmsConfiguration"] = sms_configuration
        if tags := model.get("UserPoolTags"):
            params["UserPoolTags"] = dict(tags)

        LOG.debug("Creating %s: %s", RESOURCE_NAME, params)
        try:
            response = cognito.create_user_pool(**params)
        except (ClientError, BotoCoreError) as e:
            raise RemoteOperationError("create", e, RESOURCE_NAME) from e

        model["UserPoolId"] = response["UserPool"]["Id"]

        # the create response is not trusted to echo the remote state
        return self.read(request)

    def read(
        self,
        request: ResourceRequest[CognitoUserPoolProperties],
    ) -> ProgressEvent[CognitoUserPoolProperties]:
        """
        Fetch resource information. A pool that does not exist (anymore) is reported with
        ``resource_model=None`` instead of an error.

        IAM permissions required:
          - cognito-idp:DescribeUserPool
        """
        user_pool_id = self._get_user_pool_id(request)
        cognito = request.aws_client_factory.cognito_idp

        LOG.debug("Reading %s: %s", RESOURCE_NAME, user_pool_id)
        try:
            user_pool = cognito.describe_user_pool(UserPoolId=user_pool_id)["UserPool"]
        except cognito.exceptions.ResourceNotFoundException:
            LOG.warning("%s %s is already gone", RESOURCE_NAME, user_pool_id)
            return ProgressEvent(
                status=OperationStatus.SUCCESS,
                resource_model=None,
                message=f"{RESOURCE_NAME} {user_pool_id} not found",
            )

        return ProgressEvent(
            status=OperationStatus.SUCCESS,
            resource_model=self._model_from_user_pool(user_pool),
        )

    def update(
        self,
        request: ResourceRequest[CognitoUserPoolProperties],
    ) -> ProgressEvent[CognitoUserPoolProperties]:
        """
        Update a resource. Only properties that differ from the previous state are sent.

        Changes of create-only properties (UserPoolName, AliasAttributes) are not applied, the pool has to be
        replaced for those.

        IAM permissions required:
          - cognito-idp:UpdateUserPool
          - cognito-idp:DescribeUserPool
        """
        model = request.desired_state
        cognito = request.aws_client_factory.cognito_idp

        user_pool_id = self._get_user_pool_id(request)
        model["UserPoolId"] = user_pool_id
        self._validate_enum_properties(model)

        desired = self._with_defaults(model)
        previous = self._with_defaults(request.previous_state) if request.previous_state else None

        if previous is not None:
            create_only = util.get_schema_property_names(self.SCHEMA, "createOnlyProperties")
            for name in util.get_changed_properties(desired, previous, create_only):
                LOG.warning(
                    "Changes to create-only property %s of %s %s are not applied",
                    name,
                    RESOURCE_NAME,
                    user_pool_id,
                )

        params = {"UserPoolId": user_pool_id}
        for name in util.get_changed_properties(desired, previous, MUTABLE_PROPERTIES):
            match name:
                case "AutoVerifiedAttributes":
                    params[name] = list(desired.get(name) or [])
                case "UserPoolTags":
                    params[name] = dict(desired.get(name) or {})
                case "EmailConfiguration":
                    if (email_configuration := self._get_email_configuration(desired)) is not None:
                        params[name] = email_configuration
                case "SmsConfiguration":
                    if (sms_configuration := self._get_sms_configuration(desired)) is not None:
                        params[name] = sms_configuration
                case _:
                    if value := desired.get(name):
                        params[name] = value

        LOG.debug("Updating %s: %s", RESOURCE_NAME, params)
        try:
            cognito.update_user_pool(**params)
        except (ClientError, BotoCoreError) as e:
            raise RemoteOperationError("update", e, RESOURCE_NAME) from e

        return self.read(request)

    def delete(
        self,
        request: ResourceRequest[CognitoUserPoolProperties],
    ) -> ProgressEvent[CognitoUserPoolProperties]:
        """
        Delete a resource

        IAM permissions required:
          - cognito-idp:DeleteUserPool
        """
        model = request.desired_state
        cognito = request.aws_client_factory.cognito_idp
        user_pool_id = self._get_user_pool_id(request)

        LOG.debug("Deleting %s: %s", RESOURCE_NAME, user_pool_id)
        try:
            cognito.delete_user_pool(UserPoolId=user_pool_id)
        except (ClientError, BotoCoreError) as e:
            raise RemoteOperationError("delete", e, RESOURCE_NAME) from e

        return ProgressEvent(
            status=OperationStatus.SUCCESS,
            resource_model=util.deselect_attributes(
                model, util.get_schema_property_names(self.SCHEMA, "readOnlyProperties")
            ),
        )

    def _default(self, property_name: str):
        return util.get_property_default(self.SCHEMA, property_name)

    def _with_defaults(self, model: CognitoUserPoolProperties) -> CognitoUserPoolProperties:
        result = dict(model)
        if not result.get("MfaConfiguration"):
            result["MfaConfiguration"] = self._default("MfaConfiguration")
        return result

    @staticmethod
    def _get_user_pool_id(request: ResourceRequest[CognitoUserPoolProperties]) -> str:
        previous = request.previous_state or {}
        user_pool_id = request.desired_state.get("UserPoolId") or previous.get("UserPoolId")
        if not user_pool_id:
            raise MissingIdentifierError(
                f"No UserPoolId for resource {request.logical_resource_id} of type {request.resource_type}"
            )
        return user_pool_id

    @staticmethod
    def _validate_enum_properties(model: CognitoUserPoolProperties):
        for value in model.get("AliasAttributes") or []:
            if value not in ALIAS_ATTRIBUTE_TYPES:
                raise InvalidPropertyError("AliasAttributes", value, ALIAS_ATTRIBUTE_TYPES)
        for value in model.get("AutoVerifiedAttributes") or []:
            if value not in VERIFIED_ATTRIBUTE_TYPES:
                raise InvalidPropertyError("AutoVerifiedAttributes", value, VERIFIED_ATTRIBUTE_TYPES)
        mfa_configuration = model.get("MfaConfiguration")
        if mfa_configuration and mfa_configuration not in USER_POOL_MFA_TYPES:
            raise InvalidPropertyError("MfaConfiguration", mfa_configuration, USER_POOL_MFA_TYPES)

    @staticmethod
    def _get_block(model: CognitoUserPoolProperties, property_name: str) -> Optional[dict]:
        """
        Returns the configuration block stored under ``property_name``, or None if the model does not set it.
        A single-element list wrapping the block is unwrapped.

        :raises ConfigurationShapeError: if the block is present but empty or not a mapping
        """
        if property_name not in model:
            return None
        block = model[property_name]
        if isinstance(block, list):
            block = block[0] if len(block) == 1 else None
        if not isinstance(block, dict) or not block:
            raise ConfigurationShapeError(f"{property_name} is present but empty or malformed")
        return block

    def _get_email_configuration(self, model: CognitoUserPoolProperties) -> Optional[dict]:
        block = self._get_block(model, "EmailConfiguration")
        if block is None:
            return None
        return util.remove_empty_values(util.select_attributes(block, EMAIL_CONFIGURATION_KEYS))

    def _get_sms_configuration(self, model: CognitoUserPoolProperties) -> Optional[dict]:
        block = self._get_block(model, "SmsConfiguration")
        if block is None:
            return None
        if not block.get("SnsCallerArn"):
            raise ConfigurationShapeError("SmsConfiguration requires SnsCallerArn")
        return util.remove_empty_values(util.select_attributes(block, SMS_CONFIGURATION_KEYS))

    @staticmethod
    def _model_from_user_pool(user_pool: dict) -> CognitoUserPoolProperties:
        """
        Builds the resource model from a DescribeUserPool response. Properties the response does not carry
        (or carries empty) are left unset.
        """
        model: CognitoUserPoolProperties = {"UserPoolId": user_pool["Id"]}
        if name := user_pool.get("Name"):
            model["UserPoolName"] = name
        if arn := user_pool.get("Arn"):
            model["Arn"] = arn
        for list_property in ("AliasAttributes", "AutoVerifiedAttributes"):
            if values := user_pool.get(list_property):
                model[list_property] = list(values)
        for scalar_property in (*MESSAGE_PROPERTIES, "MfaConfiguration"):
            if value := user_pool.get(scalar_property):
                model[scalar_property] = value
        if email_configuration := util.remove_empty_values(
            util.select_attributes(user_pool.get("EmailConfiguration") or {}, EMAIL_CONFIGURATION_KEYS)
        ):
            model["EmailConfiguration"] = email_configuration
        if sms_configuration := util.remove_empty_values(
            util.select_attributes(user_pool.get("SmsConfiguration") or {}, SMS_CONFIGURATION_KEYS)
        ):
            model["SmsConfiguration"] = sms_configuration
        if tags := user_pool.get("UserPoolTags"):
            model["UserPoolTags"] = dict(tags)
        return model
