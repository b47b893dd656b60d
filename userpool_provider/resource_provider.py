from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from logging import Logger
from typing import Generic, Optional, Type, TypedDict, TypeVar

from plux import Plugin, PluginManager

from userpool_provider import config
from userpool_provider.aws.connect import ServiceLevelClientFactory, connect_to
from userpool_provider.constants import RESOURCE_PROVIDER_NAMESPACE
from userpool_provider.exceptions import (
    ConfigurationShapeError,
    InvalidPropertyError,
    MissingIdentifierError,
    RemoteOperationError,
    ResourceProviderError,
)
from userpool_provider.provider_utils import validate_properties

LOG = logging.getLogger(__name__)

Properties = TypeVar("Properties")

PUBLIC_REGISTRY: dict[str, Type[ResourceProvider]] = {}


class OperationStatus(Enum):
    PENDING = auto()
    IN_PROGRESS = auto()
    SUCCESS = auto()
    FAILED = auto()


class HandlerErrorCode(str, Enum):
    InvalidRequest = "InvalidRequest"
    NotFound = "NotFound"
    GeneralServiceException = "GeneralServiceException"
    InternalFailure = "InternalFailure"


@dataclass
class ProgressEvent(Generic[Properties]):
    status: OperationStatus
    # None signals that the remote object does not exist (anymore)
    resource_model: Optional[Properties]

    message: str = ""
    result: Optional[str] = None
    error_code: Optional[HandlerErrorCode] = None
    custom_context: dict = field(default_factory=dict)


class Credentials(TypedDict):
    accessKeyId: str
    secretAccessKey: str
    sessionToken: str


class ResourceProviderPayloadRequestData(TypedDict):
    logicalResourceId: str
    resourceProperties: Properties
    previousResourceProperties: Optional[Properties]
    callerCredentials: Credentials
    providerCredentials: Credentials
    systemTags: dict[str, str]
    previousSystemTags: dict[str, str]
    stackTags: dict[str, str]
    previousStackTags: dict[str, str]


class ResourceProviderPayload(TypedDict):
    callbackContext: dict
    stackId: str
    requestData: ResourceProviderPayloadRequestData
    resourceType: str
    resourceTypeVersion: str
    awsAccountId: str
    bearerToken: str
    region: str
    action: str


def convert_payload(
    stack_name: str, stack_id: str, payload: ResourceProviderPayload
) -> ResourceRequest[Properties]:
    credentials = payload["requestData"].get("callerCredentials") or {}
    client_factory = connect_to(
        aws_access_key_id=credentials.get("accessKeyId"),
        aws_session_token=credentials.get("sessionToken"),
        aws_secret_access_key=credentials.get("secretAccessKey"),
        region_name=payload["region"],
    )
    desired_state = payload["requestData"]["resourceProperties"]
    rr = ResourceRequest(
        _original_payload=desired_state,
        aws_client_factory=client_factory,
        request_token=str(uuid.uuid4()),
        stack_name=stack_name,
        stack_id=stack_id,
        account_id=payload["awsAccountId"],
        region_name=payload["region"],
        desired_state=desired_state,
        logical_resource_id=payload["requestData"]["logicalResourceId"],
        resource_type=payload["resourceType"],
        logger=logging.getLogger(f"{__name__}.{payload['resourceType']}"),
        custom_context=payload.get("callbackContext") or {},
        action=payload["action"],
    )

    if previous_properties := payload["requestData"].get("previousResourceProperties"):
        rr.previous_state = previous_properties

    if stack_tags := payload["requestData"].get("stackTags"):
        rr.tags = stack_tags
    if previous_stack_tags := payload["requestData"].get("previousStackTags"):
        rr.previous_tags = previous_stack_tags

    return rr


@dataclass
class ResourceRequest(Generic[Properties]):
    _original_payload: Properties

    aws_client_factory: ServiceLevelClientFactory
    request_token: str
    stack_name: str
    stack_id: str
    account_id: str
    region_name: str
    action: str

    desired_state: Properties

    logical_resource_id: str
    resource_type: str

    logger: Logger

    custom_context: dict = field(default_factory=dict)

    previous_state: Optional[Properties] = None
    previous_tags: Optional[dict[str, str]] = None
    tags: dict[str, str] = field(default_factory=dict)


class CloudFormationResourceProviderPlugin(Plugin):
    """
    Base class for resource provider plugins.
    """

    namespace = RESOURCE_PROVIDER_NAMESPACE


class ResourceProvider(Generic[Properties]):
    """
    This provides a base class onto which service-specific resource providers are built.

    Subclasses set ``TYPE`` (the resource type name) and ``SCHEMA`` (the resource schema).
    """

    TYPE: str
    SCHEMA: dict

    def create(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError

    def read(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError

    def update(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError

    def delete(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError


def register_resource_provider(cls: Type[ResourceProvider]) -> Type[ResourceProvider]:
    """Class decorator that makes a provider loadable by its ``TYPE`` without going through plugin discovery."""
    PUBLIC_REGISTRY[cls.TYPE] = cls
    return cls


class NoResourceProvider(Exception):
    pass


def resolve_json_pointer(resource_props: Properties, primary_id_path: str) -> str:
    primary_id_path = primary_id_path.replace("/properties", "")
    parts = [p for p in primary_id_path.split("/") if p]

    resolved_part = resource_props.copy()
    for i in range(len(parts)):
        part = parts[i]
        resolved_part = resolved_part.get(part)
        if i == len(parts) - 1:
            # last part
            return resolved_part

    raise Exception(f"Resource properties is missing field: {part}")


def get_handler_error_code(error: ResourceProviderError) -> HandlerErrorCode:
    if isinstance(error, (ConfigurationShapeError, InvalidPropertyError, MissingIdentifierError)):
        return HandlerErrorCode.InvalidRequest
    if isinstance(error, RemoteOperationError):
        if error.error_code == "ResourceNotFoundException":
            return HandlerErrorCode.NotFound
        return HandlerErrorCode.GeneralServiceException
    return HandlerErrorCode.InternalFailure


class ResourceProviderExecutor:
    """
    Point of abstraction between the orchestration engine's payloads and the providers.
    """

    def __init__(
        self,
        *,
        stack_name: str,
        stack_id: str,
    ):
        self.stack_name = stack_name
        self.stack_id = stack_id

    def deploy(self, resource: dict, raw_payload: ResourceProviderPayload) -> ProgressEvent[Properties]:
        """
        Runs the payload's action with the provider of its resource type and records the outcome on the
        given resource definition (``PhysicalResourceId``, ``Properties``, ``_last_deployed_state``).
        """
        payload = copy.deepcopy(raw_payload)
        resource_provider = self.load_resource_provider(payload["resourceType"])

        resource["SpecifiedProperties"] = raw_payload["requestData"]["resourceProperties"]

        event = self.execute_action(resource_provider, payload)

        if event.status == OperationStatus.SUCCESS:
            if event.resource_model is None or payload["action"] == "Remove":
                resource.pop("PhysicalResourceId", None)
            else:
                resource["PhysicalResourceId"] = self.extract_physical_resource_id_from_model_with_schema(
                    event.resource_model, resource_provider.SCHEMA
                )
            resource["Properties"] = event.resource_model
            resource["_last_deployed_state"] = copy.deepcopy(event.resource_model)
        return event

    def execute_action(
        self, resource_provider: ResourceProvider, raw_payload: ResourceProviderPayload
    ) -> ProgressEvent[Properties]:
        change_type = raw_payload["action"]
        request = convert_payload(
            stack_name=self.stack_name, stack_id=self.stack_id, payload=raw_payload
        )

        match change_type:
            case "Add":
                if failed := self._validate_desired_state(resource_provider, request):
                    return failed
                return self._run(resource_provider.create, request)
            case "Dynamic" | "Modify":
                if failed := self._validate_desired_state(resource_provider, request):
                    return failed
                return self._run(resource_provider.update, request)
            case "Remove":
                return self._run(resource_provider.delete, request)
            case "Read":
                # read errors are handed to the caller unchanged
                return resource_provider.read(request)
            case _:
                raise NotImplementedError(change_type)

    def _validate_desired_state(
        self, resource_provider: ResourceProvider, request: ResourceRequest
    ) -> Optional[ProgressEvent]:
        if not config.VALIDATE_RESOURCE_PROPERTIES:
            return None
        violations = validate_properties(resource_provider.SCHEMA, request.desired_state)
        if not violations:
            return None
        LOG.debug(
            "Invalid properties for resource %s (type %s): %s",
            request.logical_resource_id,
            request.resource_type,
            violations,
        )
        return ProgressEvent(
            status=OperationStatus.FAILED,
            resource_model={},
            message=f"Properties validation failed for resource {request.logical_resource_id}: "
            + "; ".join(violations),
            error_code=HandlerErrorCode.InvalidRequest,
        )

    def _run(self, handler, request: ResourceRequest) -> ProgressEvent:
        try:
            return handler(request)
        except ResourceProviderError as e:
            log_method = LOG.exception if config.CFN_VERBOSE_ERRORS else LOG.warning
            log_method(
                'Failed to %s resource with id "%s" of type "%s": %s',
                request.action,
                request.logical_resource_id,
                request.resource_type,
                e,
            )
            return ProgressEvent(
                status=OperationStatus.FAILED,
                resource_model={},
                message=str(e),
                error_code=get_handler_error_code(e),
            )

    def load_resource_provider(self, resource_type: str) -> ResourceProvider:
        # 1. providers registered in-process
        if provider_class := PUBLIC_REGISTRY.get(resource_type):
            return provider_class()

        # 2. providers installed as plugins
        try:
            plugin = plugin_manager.load(resource_type)
            return plugin.factory()
        except ValueError:
            # could not find a plugin for that name
            pass
        except Exception:
            LOG.warning(
                "Failed to load resource type %s as a ResourceProvider.",
                resource_type,
                exc_info=LOG.isEnabledFor(logging.DEBUG),
            )

        raise NoResourceProvider(resource_type)

    def extract_physical_resource_id_from_model_with_schema(
        self, resource_model: Properties, resource_type_schema: dict
    ) -> str:
        primary_id_paths = resource_type_schema["primaryIdentifier"]
        if len(primary_id_paths) > 1:
            return "-".join([resolve_json_pointer(resource_model, pip) for pip in primary_id_paths])
        return resolve_json_pointer(resource_model, primary_id_paths[0])


plugin_manager = PluginManager(CloudFormationResourceProviderPlugin.namespace)
