class PipelineError(Exception):
    """Base class for failures of a single mask-to-mesh run."""


class EmptyMaskError(PipelineError):
    """Thrown when the mask holds no foreground pixel."""
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        super().__init__(f'No foreground pixel found in {width}x{height} mask')


class TracingBoundExceeded(PipelineError):
    """Thrown when the boundary walk does not close within its step budget."""
    def __init__(self, start: tuple[int, int], max_steps: int):
        self.start = start
        self.max_steps = max_steps
        super().__init__(f'Contour starting at {start} did not close within {max_steps} steps')


class DegenerateOrderingError(PipelineError):
    """Thrown when a ring ordering strategy cannot produce a usable ring."""
    def __init__(self, strategy: str, reason: str):
        self.strategy = strategy
        self.reason = reason
        super().__init__(f'{strategy} ordering failed: {reason}')


class InvalidConfigurationError(PipelineError, ValueError):
    """Thrown when a configuration value cannot be corrected automatically."""
    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f'Invalid value for {field}: {value!r}')
