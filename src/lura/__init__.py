"""lura - subprocess execution engine.

Runs external programs while draining stdout and stderr concurrently,
dispatching each line to observers, optionally capturing the text and
enforcing the exit code. Works on OS threads or asyncio tasks, from blocking
or async call sites.

Usage:
    from lura.run import Runner, run, sh

    output = sh("echo hi")
    assert output.stdout == "hi\\n"
"""

__version__ = "0.1.0"

from .errors import BridgeError, RunError
from .run import Output, Runner, sh, sh_async

__all__ = [
    "BridgeError",
    "Output",
    "RunError",
    "Runner",
    "__version__",
    "sh",
    "sh_async",
]
