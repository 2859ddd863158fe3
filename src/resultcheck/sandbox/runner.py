"""Run Python scripts inside a sandbox directory.

While a script runs:
- the working directory is the sandbox
- snapshots behave in strict mode and resolve the project root from the
  caller's original working directory
- plotting output goes to a non-interactive backend
- stdout, warnings and informational messages are optionally silenced

Every one of these is undone before ``run`` returns or raises.
"""

from __future__ import annotations

import io
import logging
import os
import runpy
import shutil
import sys
import warnings
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager, redirect_stderr, redirect_stdout
from pathlib import Path

from resultcheck.context import get_execution_context, sandboxed_execution
from resultcheck.errors import (
    ErrorContext,
    SandboxMissingError,
    ScriptExecutionError,
    ScriptNotFoundError,
)
from resultcheck.sandbox.manager import (
    Sandbox,
    SandboxManager,
    default_manager,
    resolve_root_or_cwd,
)
from resultcheck.sandbox.paths import reject_traversal, staging_target

logger = logging.getLogger(__name__)

NULL_PLOT_BACKEND = "agg"


@contextmanager
def working_directory(path: str | os.PathLike[str]) -> Iterator[Path]:
    """Temporarily change the current working directory."""
    previous = os.getcwd()
    os.chdir(path)
    try:
        yield Path(path)
    finally:
        os.chdir(previous)


@contextmanager
def null_graphics() -> Iterator[None]:
    """Route matplotlib output to a non-interactive backend.

    Sets MPLBACKEND for scripts that import matplotlib themselves and
    switches an already-imported pyplot. Figures opened during the block
    are closed afterwards.
    """
    previous_env = os.environ.get("MPLBACKEND")
    os.environ["MPLBACKEND"] = NULL_PLOT_BACKEND

    pyplot = sys.modules.get("matplotlib.pyplot")
    previous_backend = None
    if pyplot is not None:
        previous_backend = pyplot.get_backend()
        pyplot.switch_backend(NULL_PLOT_BACKEND)
    figures_before = set(pyplot.get_fignums()) if pyplot is not None else set()

    try:
        yield
    finally:
        pyplot = sys.modules.get("matplotlib.pyplot")
        if pyplot is not None:
            for number in set(pyplot.get_fignums()) - figures_before:
                pyplot.close(number)
            if previous_backend is not None:
                pyplot.switch_backend(previous_backend)
        if previous_env is None:
            os.environ.pop("MPLBACKEND", None)
        else:
            os.environ["MPLBACKEND"] = previous_env


@contextmanager
def suppressed_messages() -> Iterator[io.StringIO]:
    """Silence stderr and log records below WARNING."""
    previous_disable = logging.root.manager.disable
    logging.disable(logging.INFO)
    buffer = io.StringIO()
    try:
        with redirect_stderr(buffer):
            yield buffer
    finally:
        logging.disable(previous_disable)


@contextmanager
def script_dir_on_path(script: Path) -> Iterator[None]:
    """Make sibling modules importable, as ``python script.py`` does."""
    entry = str(script.parent)
    sys.path.insert(0, entry)
    try:
        yield
    finally:
        try:
            sys.path.remove(entry)
        except ValueError:
            pass


class ScriptRunner:
    """Executes scripts inside sandboxes created by a SandboxManager.

    Example:
        >>> runner = ScriptRunner()
        >>> sandbox = setup_sandbox(["data/input.csv"])
        >>> runner.run("analysis.py", sandbox)
    """

    def __init__(self, manager: SandboxManager | None = None) -> None:
        self.manager = manager or default_manager

    def locate_script(self, sandbox: Sandbox, script_path: str | os.PathLike[str]) -> Path:
        """Find the script and make sure a copy lives inside the sandbox.

        Search order: an already staged copy, the project root, then the
        path as given.

        Raises:
            InvalidPathError: If the path has a ``..`` component.
            ScriptNotFoundError: If none of the locations has the file.
        """
        reject_traversal(script_path)
        staged = staging_target(sandbox.path, script_path)
        if staged.is_file():
            return staged

        in_root = resolve_root_or_cwd() / script_path
        if in_root.is_file():
            return self._stage_script(in_root, staged)

        direct = Path(script_path)
        if direct.is_file():
            return self._stage_script(direct, staged)

        raise ScriptNotFoundError(
            f"Script file not found: {os.fspath(script_path)}",
            context=ErrorContext(script=os.fspath(script_path), sandbox_id=sandbox.id),
        )

    @staticmethod
    def _stage_script(source: Path, target: Path) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        logger.debug("Staged script %s to %s", source, target)
        return target

    def run(
        self,
        script_path: str | os.PathLike[str],
        sandbox: Sandbox | None = None,
        suppress_messages: bool = True,
        suppress_warnings: bool = True,
        capture_output: bool = True,
    ) -> None:
        """Execute a script with the sandbox as working directory.

        Args:
            script_path: Script to run, relative to the project root or a
                path to an existing file.
            sandbox: Sandbox to run in. Defaults to the last created one.
            suppress_messages: Silence stderr and INFO/DEBUG log records.
            suppress_warnings: Ignore warnings raised by the script.
            capture_output: Capture (and discard) the script's stdout.

        Raises:
            NoSandboxError: If no sandbox is given or tracked.
            InvalidSandboxError: If ``sandbox`` is not a Sandbox handle.
            SandboxMissingError: If the sandbox directory was removed.
            InvalidPathError: If ``script_path`` traverses upward.
            ScriptNotFoundError: If the script cannot be located.
            ScriptExecutionError: If the script raises.
        """
        sandbox = self.manager.resolve(sandbox)
        if not sandbox.exists():
            raise SandboxMissingError(
                f"Sandbox directory does not exist: {sandbox.path}",
                context=ErrorContext(path=str(sandbox.path), sandbox_id=sandbox.id),
            )

        script = self.locate_script(sandbox, script_path)
        outer = get_execution_context()
        if outer is not None and outer.original_working_dir is not None:
            original_wd = outer.original_working_dir
        else:
            original_wd = Path.cwd()
        stdout_buffer = io.StringIO()

        logger.info("Running %s in sandbox %s", script_path, sandbox.id)
        try:
            with ExitStack() as stack:
                stack.enter_context(sandboxed_execution(original_wd))
                stack.enter_context(working_directory(sandbox.path))
                stack.enter_context(script_dir_on_path(script))
                stack.enter_context(null_graphics())
                if capture_output:
                    stack.enter_context(redirect_stdout(stdout_buffer))
                if suppress_warnings:
                    stack.enter_context(warnings.catch_warnings())
                    warnings.simplefilter("ignore")
                if suppress_messages:
                    stack.enter_context(suppressed_messages())

                runpy.run_path(str(script), run_name="__main__")
        except SystemExit as e:
            if e.code not in (None, 0):
                raise self._execution_error(script_path, sandbox, e) from e
        except Exception as e:
            raise self._execution_error(script_path, sandbox, e) from e

        if capture_output:
            logger.debug("Captured %d characters of script output", len(stdout_buffer.getvalue()))

    @staticmethod
    def _execution_error(
        script_path: str | os.PathLike[str],
        sandbox: Sandbox,
        error: BaseException,
    ) -> ScriptExecutionError:
        description = str(error) or type(error).__name__
        if isinstance(error, SystemExit):
            description = f"script exited with status {error.code}"
        return ScriptExecutionError(
            f"Error executing script in sandbox: {description}",
            context=ErrorContext(script=os.fspath(script_path), sandbox_id=sandbox.id),
            cause=error,
        )


default_runner = ScriptRunner()


def run_in_sandbox(
    script_path: str | os.PathLike[str],
    sandbox: Sandbox | None = None,
    suppress_messages: bool = True,
    suppress_warnings: bool = True,
    capture_output: bool = True,
) -> None:
    """Run a script in a sandbox with the default runner. See ScriptRunner.run."""
    default_runner.run(
        script_path,
        sandbox=sandbox,
        suppress_messages=suppress_messages,
        suppress_warnings=suppress_warnings,
        capture_output=capture_output,
    )
