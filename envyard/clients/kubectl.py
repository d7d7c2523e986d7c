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

"""KubernetesClient implementation driving kubectl."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

import yaml

from envyard.clients import KubernetesClient
from envyard.errors import RuntimeCallError


def run_kubectl(args: list[str], kubeconfig: Path | None = None, timeout: int = 30) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because the JSON on stdout must not be
    mixed with warnings kubectl prints on stderr.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        kubeconfig: kubeconfig file to pass with ``--kubeconfig``.
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    cmd = ["kubectl"]
    if kubeconfig is not None:
        cmd += ["--kubeconfig", str(kubeconfig)]
    try:
        result = subprocess.run(
            [*cmd, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


class KubectlClient(KubernetesClient):
    """Kubernetes access for a single cluster through its kubeconfig."""

    def __init__(self, timeout: int = 30) -> None:
        self.timeout = timeout
        self.kubeconfig: Path | None = None

    def set_config(self, path: Path) -> None:
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text())
        except (OSError, yaml.YAMLError) as err:
            raise RuntimeCallError(f"unable to load kubeconfig {path}: {err}") from err
        if not isinstance(data, dict) or not data.get("clusters"):
            raise RuntimeCallError(f"kubeconfig {path} does not define any clusters")
        self.kubeconfig = path

    def get_pods(self, selector: str) -> list[dict]:
        if self.kubeconfig is None:
            raise RuntimeCallError("kubernetes client used before set_config")
        ok, stdout, stderr = run_kubectl(
            ["get", "pods", "--all-namespaces", "-l", selector, "-o", "json"],
            kubeconfig=self.kubeconfig,
            timeout=self.timeout,
        )
        if not ok:
            raise RuntimeCallError(f"unable to list pods for {selector}: {stderr.strip()[:200]}")
        try:
            return json.loads(stdout).get("items", [])
        except json.JSONDecodeError as err:
            raise RuntimeCallError(f"unexpected kubectl output for {selector}: {err}") from err
