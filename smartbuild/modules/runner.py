# smartbuild/modules/runner.py
import os
import subprocess
import time
from datetime import datetime
from typing import Optional

from smartbuild.modules import logger


class CommandResult:
    """Outcome of one external command"""

    def __init__(self, command, returncode, stdout="", stderr="", duration=0.0, error=None):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.duration = duration
        self.error = error
        self.timestamp = datetime.now().isoformat()

    def ok(self):
        return self.error is None and self.returncode == 0

    def to_dict(self):
        return {
            "command": self.command,
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration": self.duration,
            "error": self.error,
            "timestamp": self.timestamp,
        }


class CommandRunner:
    """
    Runs shell command strings to completion, one at a time.
    There is no timeout: a command that hangs blocks its caller.
    """

    def __init__(self, env: Optional[dict] = None):
        self.env = env
        self.log = logger.Logger("runner")

    def run(self, command: str, cwd: Optional[str] = None) -> CommandResult:
        self.log.debug(f"Executing: {command}")
        start = time.time()
        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                cwd=cwd,
                env=self.env or os.environ.copy(),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
            stdout, stderr = proc.communicate()
        except OSError as e:
            return CommandResult(command, None, duration=time.time() - start, error=str(e))

        result = CommandResult(command, proc.returncode, stdout, stderr, time.time() - start)
        if not result.ok():
            result.error = f"exited with status {proc.returncode}"
        return result
