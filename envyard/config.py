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

"""Engine configuration, auto-loaded from ENVYARD_* env vars."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from envyard.checks import RetryPolicy
from envyard.constants import (
    DEFAULT_K3S_IMAGE,
    DEFAULT_MAX_WORKERS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_QUIESCENCE_SECONDS,
    DEFAULT_START_TIMEOUT_SECONDS,
    DEFAULT_STATE_DIR,
    K3S_API_PORT_FLOOR,
    STATE_FILE_NAME,
)
from envyard.utils import KubeConfigPaths, kubeconfig_paths


class EngineConfig(BaseSettings):
    """Process-wide settings handed to the engine and every provider.

    Attributes:
        state_dir: Directory holding the run state and cluster kubeconfigs.
        max_workers: Maximum number of graph branches executed at once.
        start_timeout: Seconds a readiness wait may take before failing.
        poll_interval: Seconds between readiness observations.
        quiescence: Seconds to wait before the first readiness observation.
        api_port_floor: Lowest host port handed to a cluster API server.
        k3s_image: Default k3s server image for cluster resources.
    """

    model_config = SettingsConfigDict(env_prefix="ENVYARD_", extra="ignore")

    state_dir: Path = DEFAULT_STATE_DIR
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1, le=32)
    start_timeout: float = Field(default=DEFAULT_START_TIMEOUT_SECONDS, gt=0)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    quiescence: float = Field(default=DEFAULT_QUIESCENCE_SECONDS, ge=0)
    api_port_floor: int = Field(default=K3S_API_PORT_FLOOR, ge=1024, le=65535)
    k3s_image: str = DEFAULT_K3S_IMAGE

    @property
    def state_file(self) -> Path:
        return self.state_dir / STATE_FILE_NAME

    def kubeconfig_paths(self, cluster_name: str) -> KubeConfigPaths:
        return kubeconfig_paths(self.state_dir, cluster_name)

    def start_policy(self, quiescence: bool = True) -> RetryPolicy:
        """Readiness policy for waits bounded by ``start_timeout``.

        Args:
            quiescence: Whether to apply the configured quiescence delay.
        """
        return RetryPolicy.from_timeout(
            self.start_timeout,
            self.poll_interval,
            quiescence=self.quiescence if quiescence else 0.0,
        )
