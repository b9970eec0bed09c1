from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class InstanceGroupRole(str, Enum):
    MASTER = "Master"
    NODE = "Node"
    BASTION = "Bastion"
    APISERVER = "APIServer"


@dataclass(frozen=True)
class InstanceGroup:
    name: str
    role: InstanceGroupRole
    min_size: int = 0
    max_size: int = 0


@dataclass(frozen=True)
class Cluster:
    name: str
    cloud_provider: str
    master_public_name: str
    master_internal_name: str = ""
    bastion_public_name: str = ""
    spec: dict = field(default_factory=dict, compare=False)

    @property
    def internal_api_name(self) -> str:
        return self.master_internal_name or f"api.internal.{self.name}"


def uses_bastion(instance_groups: list[InstanceGroup]) -> bool:
    return any(ig.role == InstanceGroupRole.BASTION for ig in instance_groups)
