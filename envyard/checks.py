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

"""Readiness polling: retry policy and the checks built on it."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from math import ceil
from typing import TYPE_CHECKING, TypeVar

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, stop_after_delay, wait_fixed

from envyard.constants import CRASHED_CONTAINER_STATES, RUNNING_CONTAINER_STATE
from envyard.errors import CrashDetectedError, NotReadyError, ReadinessTimeoutError, RuntimeCallError

if TYPE_CHECKING:
    from envyard.clients import ContainerTasks, HTTPClient, KubernetesClient

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded polling policy.

    Attributes:
        max_attempts: Maximum number of attempts.
        interval: Seconds to sleep between attempts.
        quiescence: Seconds to wait before the first observation.
    """

    max_attempts: int
    interval: float
    quiescence: float = 0.0

    @classmethod
    def from_timeout(cls, timeout: float, interval: float, quiescence: float = 0.0) -> RetryPolicy:
        """Build a policy whose attempts x interval covers *timeout*."""
        attempts = max(1, ceil(timeout / interval)) if interval > 0 else 1
        return cls(max_attempts=attempts, interval=interval, quiescence=quiescence)

    @property
    def timeout(self) -> float:
        return self.max_attempts * self.interval

    def run(self, attempt: Callable[[], T], description: str) -> T:
        """Call *attempt* until it returns instead of raising NotReadyError.

        Any other exception from the attempt ends the wait immediately.

        Args:
            attempt: Callable that raises NotReadyError while not converged.
            description: Human readable subject used in the timeout message.

        Returns:
            The attempt's return value.

        Raises:
            ReadinessTimeoutError: If the attempts or the time budget run out.
        """
        if self.quiescence > 0:
            time.sleep(self.quiescence)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts) | stop_after_delay(self.timeout),
            wait=wait_fixed(self.interval),
            retry=retry_if_exception_type(NotReadyError),
            reraise=True,
        )
        try:
            return retrying(attempt)
        except NotReadyError as err:
            raise ReadinessTimeoutError(
                f"timed out after {self.timeout:.2f}s waiting for {description}: {err}"
            ) from err


def _check_not_crashed(state: str, subject: str) -> None:
    if state in CRASHED_CONTAINER_STATES:
        raise CrashDetectedError(f"{subject} {state} prematurely")


def wait_for_log_marker(
    tasks: ContainerTasks,
    container_id: str,
    marker: str,
    policy: RetryPolicy,
) -> None:
    """Wait until a container's logs contain *marker*.

    A container that has exited fails the wait straight away.

    Raises:
        CrashDetectedError: If the container is observed exited.
        ReadinessTimeoutError: If the marker never shows up.
    """

    def _attempt() -> None:
        _check_not_crashed(tasks.container_state(container_id), f"container {container_id}")
        logs = tasks.container_logs(container_id, True, True)
        if isinstance(logs, bytes):
            logs = logs.decode("utf-8", errors="replace")
        if marker not in logs:
            raise NotReadyError(f"'{marker}' not found in logs")

    policy.run(_attempt, f"container {container_id} to log '{marker}'")


def wait_for_container_running(tasks: ContainerTasks, name: str, policy: RetryPolicy) -> str:
    """Wait until exactly one container called *name* is running.

    A container can start and crash moments later, so the policy's
    quiescence delay passes before the first look.

    Returns:
        The running container's id.

    Raises:
        CrashDetectedError: If the container is observed exited.
        ReadinessTimeoutError: If it never reaches the running state.
    """

    def _attempt() -> str:
        ids = tasks.find_container_ids(name)
        if len(ids) != 1:
            raise NotReadyError(f"expected 1 container called {name}, found {len(ids)}")
        state = tasks.container_state(ids[0])
        _check_not_crashed(state, f"container {name}")
        if state != RUNNING_CONTAINER_STATE:
            raise NotReadyError(f"container {name} is {state}")
        return ids[0]

    return policy.run(_attempt, f"container {name} to be running")


def pod_is_ready(pod: dict) -> bool:
    """Return True when a pod is Running and every container reports ready."""
    status = pod.get("status") or {}
    if status.get("phase") != "Running":
        return False
    statuses = status.get("containerStatuses") or []
    return bool(statuses) and all(cs.get("ready") for cs in statuses)


def wait_for_pods(kubernetes: KubernetesClient, selectors: Iterable[str], policy: RetryPolicy) -> None:
    """Wait until every selector matches at least one pod and all are ready.

    API errors count as "not yet"; the server may still be coming up.

    Raises:
        ReadinessTimeoutError: If the pods are not ready within the budget.
    """
    selectors = list(selectors)

    def _attempt() -> None:
        for selector in selectors:
            try:
                pods = kubernetes.get_pods(selector)
            except RuntimeCallError as err:
                raise NotReadyError(str(err)) from err
            if not pods:
                raise NotReadyError(f"no pods match {selector}")
            pending = [p.get("metadata", {}).get("name", "?") for p in pods if not pod_is_ready(p)]
            if pending:
                raise NotReadyError(f"pods not ready: {', '.join(pending)}")

    policy.run(_attempt, f"pods {', '.join(selectors)}")


def wait_for_http_status(http: HTTPClient, url: str, status: int, policy: RetryPolicy) -> None:
    """Poll *url* until it answers with *status*.

    Transport errors count as "not yet" because the listener may still be
    starting.

    Raises:
        ReadinessTimeoutError: If the status is never observed.
    """

    def _attempt() -> None:
        try:
            got = http.get(url)
        except RuntimeCallError as err:
            raise NotReadyError(str(err)) from err
        if got != status:
            raise NotReadyError(f"expected status {status}, got {got}")

    policy.run(_attempt, f"{url} to return {status}")
