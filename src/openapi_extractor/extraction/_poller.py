"""Readiness polling across group-versions.

A poll races three things inside one task group: the probing loop, the
deadline and the run's cancellation event. Whichever finishes first decides
the outcome.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, final

import anyio
import httpx

from openapi_extractor.exceptions import (
    KubeAPIError,
    Phase,
    ReadinessCancelledError,
    ReadinessTimeoutError,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from openapi_extractor.kube import KubeClient
    from openapi_extractor.registrar import GroupVersion

type Probe = Callable[[GroupVersion], Awaitable[bool]]

DEFAULT_POLL_INTERVAL = 1.0


def openapi_v3_path(group_version: "GroupVersion") -> str:
    """Return the v3 discovery path for ``group_version``."""
    return f"/openapi/v3/apis/{group_version.group}/{group_version.version}"


def openapi_v3_probe(client: "KubeClient") -> Probe:
    """Probe that passes once the v3 document of a group-version is served.

    Any 2xx answer to ``HEAD /openapi/v3/apis/<group>/<version>`` counts as
    ready; HTTP and transport errors count as not ready.
    """

    async def probe(group_version: "GroupVersion") -> bool:
        try:
            await client.head(openapi_v3_path(group_version))
        except (KubeAPIError, httpx.HTTPError):
            return False
        return True

    return probe


@final
class ReadinessPoller:
    """Polls a set of group-versions until all are ready.

    Every round probes each group-version still outstanding at the start of
    the round exactly once. Successful ones are dropped and never probed
    again. Rounds are spaced by a fixed interval and the first round starts
    immediately.

    Attributes:
        rounds: The outstanding group-versions at the start of each round of
            the most recent wait().
    """

    __slots__ = (
        "_cancel_event",
        "_interval",
        "_logger",
        "_phase",
        "_probe",
        "_timeout",
        "rounds",
    )

    def __init__(
        self,
        probe: Probe,
        *,
        timeout: float,
        interval: float = DEFAULT_POLL_INTERVAL,
        cancel_event: anyio.Event | None = None,
        phase: Phase = Phase.READINESS,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the poller.

        Args:
            probe: Reports whether one group-version is ready.
            timeout: Seconds before polling gives up.
            interval: Seconds between rounds.
            cancel_event: Event that aborts polling when set.
            phase: Phase reported on the raised errors.
            logger: Logger for per-round progress.
        """
        self._probe = probe
        self._timeout = timeout
        self._interval = interval
        self._cancel_event = cancel_event
        self._phase = phase
        self._logger = logger
        self.rounds: list[tuple[GroupVersion, ...]] = []

    async def wait(self, group_versions: Iterable["GroupVersion"]) -> None:
        """Block until every group-version is ready.

        Raises:
            ReadinessTimeoutError: If the deadline elapses first. Lists the
                outstanding group-versions, sorted.
            ReadinessCancelledError: If the cancellation event is set first.
        """
        pending = list(dict.fromkeys(group_versions))
        self.rounds = []
        if not pending:
            return

        cancelled = False

        async with anyio.create_task_group() as tg:

            async def watch_cancellation(event: anyio.Event) -> None:
                nonlocal cancelled
                await event.wait()
                cancelled = True
                tg.cancel_scope.cancel()

            if self._cancel_event is not None:
                tg.start_soon(watch_cancellation, self._cancel_event)

            with anyio.move_on_after(self._timeout):
                await self._poll(pending)

            tg.cancel_scope.cancel()

        unready = sorted(pending)
        if cancelled:
            msg = f"Cancelled while waiting for {_describe(unready)}"
            raise ReadinessCancelledError(msg, unready=unready, phase=self._phase)
        if unready:
            msg = f"Timed out after {self._timeout:g}s waiting for {_describe(unready)}"
            raise ReadinessTimeoutError(msg, unready=unready, phase=self._phase)

    async def _poll(self, pending: list["GroupVersion"]) -> None:
        """Probe in rounds, removing group-versions from ``pending`` as they pass."""
        while pending:
            snapshot = tuple(pending)
            self.rounds.append(snapshot)
            if self._logger is not None:
                self._logger.debug(
                    "readiness_round",
                    round=len(self.rounds),
                    outstanding=[str(gv) for gv in snapshot],
                )
            for group_version in snapshot:
                if await self._probe(group_version):
                    pending.remove(group_version)
            if pending:
                await anyio.sleep(self._interval)


def _describe(group_versions: list["GroupVersion"]) -> str:
    return ", ".join(str(gv) for gv in group_versions)
