"""Service descriptor model, emulator catalog and descriptor file loader."""

from .catalog import CATALOG, EmulatorSpec, client_variable, get_emulator
from .loader import default_stack, load_descriptors, resolve_stack
from .models import DescriptorSet, ServiceDescriptor, StackDefinition, validate_ports

__all__ = [
    "CATALOG",
    "EmulatorSpec",
    "client_variable",
    "get_emulator",
    "default_stack",
    "load_descriptors",
    "resolve_stack",
    "DescriptorSet",
    "ServiceDescriptor",
    "StackDefinition",
    "validate_ports",
]
