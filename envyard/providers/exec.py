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

"""Local command execution."""

from __future__ import annotations

from envyard.providers.base import Provider
from envyard.resources import ExecResource


class ExecProvider(Provider):
    """Runs a command on the control host.

    Commands are expected to converge, so there is no existence check and
    a re-apply simply runs them again. Nothing is left to destroy.
    """

    resource: ExecResource

    def create(self) -> None:
        resource = self.resource
        self.logger.info("Running %s %s", resource.command, " ".join(resource.arguments))
        output = self.clients.command.run(
            resource.command,
            resource.arguments,
            environment=resource.environment,
            working_directory=resource.working_directory,
            timeout=resource.timeout,
        )
        resource.outputs["output"] = output.strip()

    def destroy(self) -> None:
        self.logger.debug("Nothing to destroy for %s", self.resource.key)

    def lookup(self) -> list[str]:
        return []
