import enum
import logging
import shutil
import subprocess
from typing import Optional

from shareden.config.settings import config
from shareden.shares.errors import ConfigValidationError, ReloadError

logger = logging.getLogger(__name__)

SERVICE_NAMES = ['smbd', 'samba', 'smb']


class CommitState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    APPLYING = "applying"
    REJECTED = "rejected"


class SMBManager:
    def __init__(self, smb_conf_path: Optional[str] = None):
        self.smb_conf_path = smb_conf_path or config.smb_conf_path
        self.state = CommitState.IDLE

    def check_installed(self):
        """Check if samba is installed."""
        # Check for smbd executable
        return shutil.which("smbd") is not None or shutil.which("samba") is not None

    def validate_config(self) -> str:
        """Run testparm over smb.conf and everything it includes.

        Returns testparm's report. Raises ConfigValidationError carrying the
        report verbatim when Samba would refuse the configuration.
        """
        cmd = ["testparm", "-s", "--suppress-prompt", self.smb_conf_path]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=config.command_timeout)
        except FileNotFoundError:
            raise ConfigValidationError("testparm not found. Is samba installed?")
        except OSError as e:
            raise ConfigValidationError(f"Could not run testparm: {e.strerror or e}")
        except subprocess.TimeoutExpired:
            raise ConfigValidationError(f"testparm did not finish within {config.command_timeout}s.")

        output = "\n".join(part for part in (result.stderr, result.stdout) if part)
        if result.returncode != 0:
            raise ConfigValidationError(output)
        return output

    def reload(self):
        """Ask the running smbd to re-read its configuration without dropping connections."""
        try:
            subprocess.run(
                ["smbcontrol", "smbd", "reload-config"],
                check=True, capture_output=True, text=True, timeout=config.command_timeout
            )
            return
        except (subprocess.CalledProcessError, OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"smbcontrol reload-config failed ({e}), falling back to systemctl reload")

        if not self._manage_service("reload"):
            raise ReloadError("Could not reload samba: smbcontrol and systemctl reload both failed.")

    def commit_and_reload(self):
        """Validate the composed configuration, then make it live.

        Either the new configuration is fully in effect when this returns,
        or an exception was raised and the running service was not touched.
        """
        self._transition(CommitState.VALIDATING)
        try:
            try:
                self.validate_config()
            except ConfigValidationError as e:
                self._transition(CommitState.REJECTED)
                logger.error(f"Samba configuration rejected: {e.message}")
                raise

            self._transition(CommitState.APPLYING)
            self.reload()
            logger.info("Samba configuration reloaded")
        finally:
            self._transition(CommitState.IDLE)

    def _transition(self, state: CommitState):
        logger.debug(f"Commit state {self.state.value} -> {state.value}")
        self.state = state

    def start_service(self):
        """Start the samba service."""
        return self._manage_service("start")

    def stop_service(self):
        """Stop the samba service."""
        return self._manage_service("stop")

    def restart_service(self):
        """Restart the samba service."""
        return self._manage_service("restart")

    def get_status(self):
        """Get the status of the samba service."""
        for service in SERVICE_NAMES:
            try:
                result = subprocess.run(["systemctl", "is-active", service], stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True, timeout=config.command_timeout)
                status = result.stdout.strip()
                if status != "unknown":
                    return status
            except (OSError, subprocess.TimeoutExpired):
                continue
        return "not found"

    def _manage_service(self, action) -> bool:
        """Manage the samba service state. Returns False when no unit accepted the action."""
        for service in SERVICE_NAMES:
            try:
                subprocess.run(["systemctl", action, service], check=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, timeout=config.command_timeout)
                return True
            except (subprocess.CalledProcessError, OSError, subprocess.TimeoutExpired):
                continue
        logger.warning(f"systemctl {action} failed for every samba unit ({', '.join(SERVICE_NAMES)})")
        return False
