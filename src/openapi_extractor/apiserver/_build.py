"""Build the aggregated API server from a Go package."""

from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio

from openapi_extractor.exceptions import BuildError

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

# Characters of compiler output kept in BuildError messages
_OUTPUT_LIMIT = 4096


@final
class GoBuilder:
    """Runs ``go build`` for a main package.

    Each build option is passed as a module mode (``-mod=<option>``).
    """

    __slots__ = ("_go", "_logger")

    def __init__(
        self,
        *,
        go: str = "go",
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        self._go = go
        self._logger = logger

    def command(self, package: str, build_opts: tuple[str, ...], output: Path) -> list[str]:
        """Return the build command line."""
        return [
            self._go,
            "build",
            *(f"-mod={opt}" for opt in build_opts),
            "-o",
            str(output),
            package,
        ]

    async def build(
        self,
        package: str,
        output: Path,
        build_opts: tuple[str, ...] = (),
    ) -> Path:
        """Build ``package`` into the binary at ``output``.

        Raises:
            BuildError: If the toolchain cannot be run or the build fails.
        """
        output.parent.mkdir(parents=True, exist_ok=True)
        command = self.command(package, build_opts, output)
        if self._logger is not None:
            self._logger.info("apiserver_build_started", package=package, command=command)

        try:
            result = await anyio.run_process(command, check=False)
        except OSError as e:
            msg = f"Failed to run '{self._go}' to build {package}: {e}"
            raise BuildError(msg, package=package, cause=e) from e

        combined = (result.stdout + result.stderr).decode(errors="replace")
        if result.returncode != 0:
            msg = f"Building {package} failed with exit code {result.returncode}"
            raise BuildError(msg, package=package, output=combined[-_OUTPUT_LIMIT:])

        if self._logger is not None:
            self._logger.info("apiserver_build_finished", package=package, binary=str(output))
        return output
