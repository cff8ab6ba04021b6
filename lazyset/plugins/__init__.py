"""Bundled plugins installed into every default registry."""

from lazyset.plugins.methods import METHODS
from lazyset.plugins.operations import MATH_OPERATIONS, OPERATIONS


def install_defaults(registry):
    """Register the bundled operations and methods into ``registry``."""
    registry.register_operation(OPERATIONS)
    registry.register_operation(MATH_OPERATIONS)
    registry.register_method(METHODS)
    return registry
