from dataclasses import dataclass


@dataclass(frozen=True)
class CapacityRequirements:
    """Memory and CPU capacity of a single machine of a template."""
    memory_mb: int
    cpu_cores: float

    def __post_init__(self) -> None:
        if self.memory_mb < 0:
            raise ValueError(f"Memory must be non-negative, got {self.memory_mb}")
        if self.cpu_cores < 0:
            raise ValueError(f"CPU cores must be non-negative, got {self.cpu_cores}")

    def __str__(self) -> str:
        return f"{self.memory_mb}MB RAM, {self.cpu_cores:g} CPU"
