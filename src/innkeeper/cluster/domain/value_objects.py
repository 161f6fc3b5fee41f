"""
Cluster Value Objects
=====================
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class CoordinatorProbeResult:
    """Answer of one peer to the coordinator question."""

    reachable: bool
    is_coordinator: bool = False

    @classmethod
    def unreachable(cls) -> "CoordinatorProbeResult":
        return cls(reachable=False, is_coordinator=False)


class ClusterConfig(BaseModel):
    """
    Cluster role configuration loaded from YAML.

    Example cluster.yaml:

        coordinator: true
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    coordinator: bool = Field(
        default=False,
        description="Whether this node holds the coordinator role"
    )
