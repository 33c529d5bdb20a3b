"""APIService registration.

Key Components:
    - GroupVersion: The readiness and file naming key
    - APIServiceDescriptor: One declared APIService
    - Registration: Installed descriptors plus serving parameters
    - ServiceRegistrar: Reads manifests and installs them
"""

from ._install import (
    APISERVICES_PATH,
    SERVICE_NAME,
    SERVICE_NAMESPACE,
    ServiceRegistrar,
    apiservice_manifest,
    is_available,
    service_manifest,
)
from ._manifests import read_apiservices, read_manifest_file
from ._models import APIServiceDescriptor, GroupVersion, Registration, ServingParameters
from ._protocol import Registrar

__all__ = [
    "APISERVICES_PATH",
    "SERVICE_NAME",
    "SERVICE_NAMESPACE",
    "APIServiceDescriptor",
    "GroupVersion",
    "Registrar",
    "Registration",
    "ServiceRegistrar",
    "ServingParameters",
    "apiservice_manifest",
    "is_available",
    "read_apiservices",
    "read_manifest_file",
    "service_manifest",
]
