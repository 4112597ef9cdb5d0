"""Exception hierarchy for the layered material compositor."""


class LayerSmithError(Exception):
    """Base class for all compositor errors."""


class GraphError(LayerSmithError, TypeError):
    """Raised when an expression graph cannot be constructed or evaluated."""


class ConfigError(LayerSmithError, ValueError):
    """Raised when a layer or compositor specification fails validation."""


class LayerResolutionError(LayerSmithError):
    """Raised when a layer is missing an input its selected source path requires."""

    def __init__(self, layer_name, requirement: str):
        self.layer_name = layer_name or "<unnamed>"
        self.requirement = requirement
        super().__init__(
            f"Layer '{self.layer_name}' cannot be resolved: {requirement}"
        )


class CompositionError(LayerSmithError):
    """Raised when the base layer of a stack fails to resolve."""
