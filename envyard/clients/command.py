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

"""CommandRunner implementation using sh."""

from __future__ import annotations

import os

import sh

from envyard.clients import CommandRunner
from envyard.errors import RuntimeCallError


class ShellCommandRunner(CommandRunner):
    """Runs commands on the control host with the caller's environment."""

    def run(
        self,
        command: str,
        arguments: list[str],
        environment: dict[str, str] | None = None,
        working_directory: str | None = None,
        timeout: int | None = None,
    ) -> str:
        try:
            cmd = sh.Command(command)
        except sh.CommandNotFound as err:
            raise RuntimeCallError(f"command '{command}' not found") from err

        env = {**os.environ, **(environment or {})}
        try:
            output = cmd(*arguments, _env=env, _cwd=working_directory, _timeout=timeout)
        except sh.ErrorReturnCode as err:
            stderr = (err.stderr or b"").decode("utf-8", errors="replace").strip()[:200]
            raise RuntimeCallError(f"'{command}' exited with {err.exit_code}: {stderr}") from err
        except sh.TimeoutException as err:
            raise RuntimeCallError(f"'{command}' timed out after {timeout}s") from err
        return str(output)
