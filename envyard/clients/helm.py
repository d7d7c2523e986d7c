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

"""HelmClient implementation driving the helm CLI through sh."""

from __future__ import annotations

from pathlib import Path

import sh

from envyard import logger
from envyard.clients import HelmClient
from envyard.errors import RuntimeCallError


def _error_text(err: sh.ErrorReturnCode) -> str:
    return (err.stderr or b"").decode("utf-8", errors="replace").strip()[:200]


class HelmCLI(HelmClient):
    """Release operations through ``helm --kubeconfig <path>``."""

    def release_exists(self, kubeconfig: Path, release: str, namespace: str) -> bool:
        try:
            sh.helm("status", release, "--namespace", namespace, "--kubeconfig", str(kubeconfig))
        except sh.ErrorReturnCode_1:
            return False
        except sh.ErrorReturnCode as err:
            raise RuntimeCallError(f"unable to query release {release}: {_error_text(err)}") from err
        return True

    def install(
        self,
        kubeconfig: Path,
        release: str,
        chart: str,
        namespace: str,
        values: Path | None = None,
        overrides: dict[str, str] | None = None,
        wait: bool = True,
        timeout: str = "300s",
    ) -> None:
        args = [
            "install", release, chart,
            "--namespace", namespace,
            "--create-namespace",
            "--kubeconfig", str(kubeconfig),
            "--timeout", timeout,
        ]
        if wait:
            args.append("--wait")
        if values is not None:
            args += ["--values", str(values)]
        args += [item for key, value in (overrides or {}).items() for item in ("--set", f"{key}={value}")]
        try:
            sh.helm(*args)
        except sh.ErrorReturnCode as err:
            raise RuntimeCallError(f"unable to install chart {chart} as {release}: {_error_text(err)}") from err

    def uninstall(self, kubeconfig: Path, release: str, namespace: str) -> None:
        try:
            sh.helm("uninstall", release, "--namespace", namespace, "--kubeconfig", str(kubeconfig))
        except sh.ErrorReturnCode_1:
            logger.info("Helm release %s not found or already removed", release)
        except sh.ErrorReturnCode as err:
            raise RuntimeCallError(f"unable to uninstall release {release}: {_error_text(err)}") from err
