import os
import subprocess
from importlib import metadata

# Stamped by the release build
__version__ = "test"

def get_version() -> str:
    """
    Version reported by ``shareden version`` and ``GET /info/version``.

    The first available of:
    1. SHAREDEN_VERSION from the environment
    2. __version__, when the release build stamped one in
    3. Short commit hash of the checkout this package runs from
    4. Version of the installed distribution
    """
    override = os.getenv("SHAREDEN_VERSION")
    if override:
        return override
    if __version__ != "test":
        return __version__

    try:
        cmd = ["git", "rev-parse", "--short", "HEAD"]
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=True, timeout=5,
            cwd=os.path.dirname(os.path.abspath(__file__)),
        )
        return result.stdout.strip()
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
        pass

    try:
        return metadata.version("shareden")
    except metadata.PackageNotFoundError:
        return __version__
