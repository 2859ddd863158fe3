"""Tests for running scripts inside sandboxes."""

from __future__ import annotations

import logging
import os
import sys
import warnings
from pathlib import Path

import pytest

from resultcheck.context import get_execution_context
from resultcheck.errors import (
    InvalidPathError,
    NoSandboxError,
    SandboxMissingError,
    ScriptExecutionError,
    ScriptNotFoundError,
)
from resultcheck.sandbox.manager import SandboxManager, cleanup_sandbox, setup_sandbox
from resultcheck.sandbox.runner import ScriptRunner, run_in_sandbox


class TestRunInSandbox:
    """Tests for working directory and side-effect isolation."""

    def test_side_effects_stay_in_sandbox(self, project: Path, write_script) -> None:
        script = write_script("analysis.py", "open('out.txt', 'w').write('result')\n")
        sandbox = setup_sandbox(["data/input.csv"])

        run_in_sandbox(script, sandbox)

        assert (sandbox.path / "out.txt").read_text() == "result"
        assert not (project / "out.txt").exists()

    def test_script_sees_staged_files(self, project: Path, write_script) -> None:
        script = write_script(
            "analysis.py",
            "rows = open('data/input.csv').read().splitlines()\n"
            "open('count.txt', 'w').write(str(len(rows)))\n",
        )
        sandbox = setup_sandbox(["data/input.csv"])

        run_in_sandbox(script, sandbox)

        assert (sandbox.path / "count.txt").read_text() == "3"

    def test_cwd_is_sandbox_during_run_and_restored_after(self, project: Path, write_script) -> None:
        script = write_script("cwd.py", "import os\nopen('cwd.txt', 'w').write(os.getcwd())\n")
        sandbox = setup_sandbox()

        run_in_sandbox(script, sandbox)

        assert Path((sandbox.path / "cwd.txt").read_text()).resolve() == sandbox.path
        assert Path.cwd() == project

    def test_find_root_sees_original_project(self, project: Path, write_script) -> None:
        script = write_script(
            "root.py",
            "from resultcheck import find_root, is_strict\n"
            "open('root.txt', 'w').write(str(find_root()))\n"
            "open('strict.txt', 'w').write(str(is_strict()))\n",
        )
        sandbox = setup_sandbox()

        run_in_sandbox(script, sandbox)

        assert Path((sandbox.path / "root.txt").read_text()) == project
        assert (sandbox.path / "strict.txt").read_text() == "True"
        assert get_execution_context() is None

    def test_defaults_to_last_sandbox(self, project: Path, write_script) -> None:
        script = write_script("touch.py", "open('touched', 'w').close()\n")
        sandbox = setup_sandbox()

        run_in_sandbox(script)

        assert (sandbox.path / "touched").exists()

    def test_script_is_staged(self, project: Path, write_script) -> None:
        script = write_script("scripts/job.py", "pass\n")
        sandbox = setup_sandbox()

        run_in_sandbox(script, sandbox)

        assert (sandbox.path / "scripts" / "job.py").read_text() == "pass\n"

    def test_prefers_copy_already_in_sandbox(self, project: Path, write_script) -> None:
        script = write_script("job.py", "open('which', 'w').write('project')\n")
        sandbox = setup_sandbox()
        (sandbox.path / "job.py").write_text("open('which', 'w').write('sandbox')\n")

        run_in_sandbox(script, sandbox)

        assert (sandbox.path / "which").read_text() == "sandbox"

    def test_absolute_script_outside_project(self, project: Path, tmp_path: Path) -> None:
        external = tmp_path / "external" / "job.py"
        external.parent.mkdir()
        external.write_text("open('done', 'w').close()\n")
        sandbox = setup_sandbox()

        run_in_sandbox(external, sandbox)

        assert (sandbox.path / "done").exists()
        staged = sandbox.path / external.relative_to(external.anchor)
        assert staged.is_file()

    def test_sibling_modules_importable(self, project: Path, write_script) -> None:
        write_script("pipeline/rc_runner_helper.py", "VALUE = 42\n")
        script = write_script(
            "pipeline/main.py",
            "import rc_runner_helper\nopen('value', 'w').write(str(rc_runner_helper.VALUE))\n",
        )
        sandbox = setup_sandbox(["pipeline/rc_runner_helper.py"])

        try:
            run_in_sandbox(script, sandbox)
        finally:
            sys.modules.pop("rc_runner_helper", None)

        assert (sandbox.path / "value").read_text() == "42"
        assert str(sandbox.path / "pipeline") not in sys.path

    def test_plotting_backend_redirected(self, project: Path, write_script, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MPLBACKEND", "TkAgg")
        script = write_script("plot.py", "import os\nopen('backend', 'w').write(os.environ['MPLBACKEND'])\n")
        sandbox = setup_sandbox()

        run_in_sandbox(script, sandbox)

        assert (sandbox.path / "backend").read_text() == "agg"
        assert os.environ["MPLBACKEND"] == "TkAgg"


class TestOutputSuppression:
    """Tests for stdout, warning and message handling."""

    def test_stdout_captured_by_default(self, project: Path, write_script, capsys: pytest.CaptureFixture[str]) -> None:
        script = write_script("noisy.py", "print('lots of output')\n")
        run_in_sandbox(script, setup_sandbox())

        assert "lots of output" not in capsys.readouterr().out

    def test_stdout_passes_through(self, project: Path, write_script, capsys: pytest.CaptureFixture[str]) -> None:
        script = write_script("noisy.py", "print('lots of output')\n")
        run_in_sandbox(script, setup_sandbox(), capture_output=False)

        assert "lots of output" in capsys.readouterr().out

    def test_warnings_suppressed(self, project: Path, write_script) -> None:
        script = write_script("warn.py", "import warnings\nwarnings.warn('careful')\n")
        sandbox = setup_sandbox()

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            run_in_sandbox(script, sandbox)

        assert [str(w.message) for w in caught] == []

    def test_warnings_kept_when_requested(self, project: Path, write_script) -> None:
        script = write_script("warn.py", "import warnings\nwarnings.warn('careful')\n")
        sandbox = setup_sandbox()

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            run_in_sandbox(script, sandbox, suppress_warnings=False)

        assert "careful" in [str(w.message) for w in caught]

    def test_messages_suppressed_and_logging_restored(
        self, project: Path, write_script, caplog: pytest.LogCaptureFixture
    ) -> None:
        script = write_script(
            "chatty.py",
            "import logging, sys\n"
            "logging.getLogger('chatty').info('progress update')\n"
            "sys.stderr.write('stderr chatter')\n",
        )
        sandbox = setup_sandbox()

        with caplog.at_level(logging.INFO, logger="chatty"):
            run_in_sandbox(script, sandbox)

        assert "progress update" not in caplog.text
        assert logging.root.manager.disable == logging.NOTSET

    def test_messages_kept_when_requested(self, project: Path, write_script, caplog: pytest.LogCaptureFixture) -> None:
        script = write_script("chatty.py", "import logging\nlogging.getLogger('chatty').info('progress update')\n")
        sandbox = setup_sandbox()

        with caplog.at_level(logging.INFO, logger="chatty"):
            run_in_sandbox(script, sandbox, suppress_messages=False)

        assert "progress update" in caplog.text


class TestScriptFailures:
    """Tests for error propagation and state restoration."""

    def test_exception_wrapped(self, project: Path, write_script) -> None:
        script = write_script("broken.py", "raise ValueError('bad data')\n")
        sandbox = setup_sandbox()

        with pytest.raises(ScriptExecutionError, match="Error executing script in sandbox: bad data") as exc_info:
            run_in_sandbox(script, sandbox)

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.context.sandbox_id == sandbox.id
        assert Path.cwd() == project
        assert get_execution_context() is None

    def test_nonzero_exit_is_failure(self, project: Path, write_script) -> None:
        script = write_script("exit.py", "import sys\nsys.exit(3)\n")

        with pytest.raises(ScriptExecutionError, match="status 3"):
            run_in_sandbox(script, setup_sandbox())

    def test_zero_exit_is_success(self, project: Path, write_script) -> None:
        script = write_script("exit.py", "import sys\nsys.exit(0)\n")
        run_in_sandbox(script, setup_sandbox())

    def test_keyboard_interrupt_propagates(self, project: Path, write_script) -> None:
        script = write_script("interrupt.py", "raise KeyboardInterrupt\n")

        with pytest.raises(KeyboardInterrupt):
            run_in_sandbox(script, setup_sandbox())

        assert Path.cwd() == project
        assert get_execution_context() is None

    def test_script_not_found(self, project: Path) -> None:
        with pytest.raises(ScriptNotFoundError, match="nope.py"):
            run_in_sandbox("nope.py", setup_sandbox())

    @pytest.mark.parametrize("script", ["../outside.py", "scripts/../../outside.py", "..\\outside.py"])
    def test_traversal_rejected_before_staging(self, project: Path, sandbox_base: Path, script: str) -> None:
        (project.parent / "outside.py").write_text("open('ran', 'w').close()\n")
        sandbox = setup_sandbox()

        with pytest.raises(InvalidPathError, match="Path traversal"):
            run_in_sandbox(script, sandbox)

        assert not (sandbox_base / "outside.py").exists()
        assert list(sandbox.path.iterdir()) == []
        assert get_execution_context() is None

    def test_no_sandbox(self, project: Path, write_script) -> None:
        script = write_script("a.py", "pass\n")
        with pytest.raises(NoSandboxError):
            run_in_sandbox(script)

    def test_removed_sandbox(self, project: Path, write_script) -> None:
        script = write_script("a.py", "pass\n")
        sandbox = setup_sandbox()
        cleanup_sandbox(sandbox)

        with pytest.raises(SandboxMissingError):
            run_in_sandbox(script, sandbox)

    def test_runner_with_own_manager(self, project: Path, write_script) -> None:
        manager = SandboxManager()
        runner = ScriptRunner(manager)
        script = write_script("a.py", "open('ran', 'w').close()\n")
        sandbox = manager.setup()

        runner.run(script)

        assert (sandbox.path / "ran").exists()
        manager.cleanup(sandbox)
