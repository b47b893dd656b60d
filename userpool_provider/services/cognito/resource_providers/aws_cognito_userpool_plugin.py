from typing import Optional, Type

from userpool_provider.resource_provider import (
    CloudFormationResourceProviderPlugin,
    ResourceProvider,
)


class CognitoUserPoolProviderPlugin(CloudFormationResourceProviderPlugin):
    name = "AWS::Cognito::UserPool"

    def __init__(self):
        self.factory: Optional[Type[ResourceProvider]] = None

    def load(self):
        from userpool_provider.services.cognito.resource_providers.aws_cognito_userpool import (
            CognitoUserPoolProvider,
        )

        self.factory = CognitoUserPoolProvider
