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

"""Exception hierarchy shared by the graph, engine, providers and clients."""

from __future__ import annotations

from collections.abc import Sequence


class EnvyardError(Exception):
    """Base class for every error raised by envyard."""


class BlueprintError(EnvyardError):
    """A blueprint could not be read, parsed or validated."""


class CycleError(EnvyardError):
    """The resource graph contains a dependency cycle.

    Attributes:
        cycle: Resource keys forming the cycle, first key repeated at the end.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"dependency cycle detected: {' -> '.join(self.cycle)}")


class UnresolvedReferenceError(EnvyardError):
    """A reference names a resource or output that does not exist.

    Attributes:
        resource: Key of the resource holding the reference.
        reference: The reference expression that could not be resolved.
    """

    def __init__(self, resource: str, reference: str, reason: str = "resource not found") -> None:
        self.resource = resource
        self.reference = reference
        super().__init__(f"{resource}: unable to resolve '{reference}': {reason}")


class AlreadyExistsError(EnvyardError):
    """The target of a create already exists in the runtime."""


class RuntimeCallError(EnvyardError):
    """A call to an external capability (docker, kubectl, helm, http) failed."""


class ReadinessTimeoutError(EnvyardError, TimeoutError):
    """A bounded readiness poll exhausted its budget."""


class CrashDetectedError(EnvyardError):
    """An observed container state shows the process has crashed."""


class NotReadyError(EnvyardError):
    """Raised by a readiness check to request another attempt."""


class InvalidTransitionError(EnvyardError):
    """A resource lifecycle transition is not permitted."""
