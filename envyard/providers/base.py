# /*
# Copyright 2026 The Envyard Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Provider contract and the per-resource lifecycle state machine."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum

from envyard import logger as default_logger
from envyard.clients import Clients
from envyard.config import EngineConfig
from envyard.errors import InvalidTransitionError
from envyard.resources import Resource
from envyard.utils import fqdn


class ResourceStatus(str, Enum):
    """Lifecycle states of a resource within one engine run."""

    PENDING = "pending"
    CREATING = "creating"
    READY = "ready"
    FAILED = "failed"
    DESTROYING = "destroying"
    DESTROYED = "destroyed"


# FAILED only leads to teardown: a failed create is never retried in the same run.
_TRANSITIONS: dict[ResourceStatus, frozenset[ResourceStatus]] = {
    ResourceStatus.PENDING: frozenset({ResourceStatus.CREATING, ResourceStatus.DESTROYING}),
    ResourceStatus.CREATING: frozenset({ResourceStatus.READY, ResourceStatus.FAILED}),
    ResourceStatus.READY: frozenset({ResourceStatus.DESTROYING}),
    ResourceStatus.FAILED: frozenset({ResourceStatus.DESTROYING}),
    ResourceStatus.DESTROYING: frozenset({ResourceStatus.DESTROYED, ResourceStatus.FAILED}),
    ResourceStatus.DESTROYED: frozenset(),
}


class StatusTracker:
    """Thread-safe record of each resource's lifecycle status."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status: dict[str, ResourceStatus] = {}

    def register(self, key: str, status: ResourceStatus = ResourceStatus.PENDING) -> None:
        with self._lock:
            self._status[key] = status

    def get(self, key: str) -> ResourceStatus | None:
        with self._lock:
            return self._status.get(key)

    def transition(self, key: str, new: ResourceStatus) -> None:
        """Move *key* to *new*.

        Raises:
            InvalidTransitionError: If the move is not allowed from the current status.
        """
        with self._lock:
            current = self._status.get(key, ResourceStatus.PENDING)
            if new not in _TRANSITIONS[current]:
                raise InvalidTransitionError(f"{key}: cannot move from {current.value} to {new.value}")
            self._status[key] = new

    def snapshot(self) -> dict[str, ResourceStatus]:
        with self._lock:
            return dict(self._status)


class Provider(ABC):
    """Behaviour bound to one resource plus the capabilities it drives.

    Providers are rebuilt for every run and keep no state of their own;
    anything later resources need is published in ``resource.outputs``.
    """

    def __init__(
        self,
        resource: Resource,
        clients: Clients,
        config: EngineConfig,
        logger: logging.Logger | None = None,
    ) -> None:
        self.resource = resource
        self.clients = clients
        self.config = config
        self.logger = logger or default_logger

    @classmethod
    def runtime_name(cls, resource_type: str, name: str) -> str:
        """Name of the runtime object backing a resource of this provider."""
        return fqdn(name, resource_type)

    @property
    def key(self) -> str:
        return self.resource.key

    @abstractmethod
    def create(self) -> None:
        """Create the resource.

        Fails with AlreadyExistsError instead of duplicating infrastructure
        unless the resource converges. Sub-resources created before a
        failure are left in place for destroy to clean up.
        """

    @abstractmethod
    def destroy(self) -> None:
        """Remove everything owned by the resource; a no-op when nothing exists."""

    @abstractmethod
    def lookup(self) -> list[str]:
        """Return the ids of the runtime objects currently backing the resource."""
