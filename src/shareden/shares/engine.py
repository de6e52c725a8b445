"""
The operation set the share UI and API are built on.

Every mutation follows the same sequence: validate, write the record,
rebuild the include file, then commit (validate with testparm and reload
smbd) when the share include is enabled. The files touched are snapshotted
first; if any later step fails they are put back, so a rejected change
leaves both the disk and the running smbd exactly as they were. Each
mutation returns the share list re-read from disk rather than trusting
what was just written.
"""
import contextlib
import logging
import os
import threading
from typing import Callable, Dict, Iterable, List, Optional

from shareden.shares.composer import ShareComposer
from shareden.shares.errors import QuotaError, ShareValidationError
from shareden.shares.models import AppSettings, FilesystemUsage, Share, ShareCreate
from shareden.shares.paths import suggest_share_path, validate_settings_paths
from shareden.shares.quota import QuotaManager
from shareden.shares.records import ShareRecordStore
from shareden.shares.settings_store import SettingsStore
from shareden.shares.smb import SMBManager
from shareden.shares.usage import attach_usage, get_filesystem_usage
from shareden.shares.utils import read_text, restore_file

logger = logging.getLogger(__name__)


class _Snapshot:
    """Copies of files taken before a mutation, and how to put them back."""

    def __init__(self, files: Iterable[str], record_store: Optional[ShareRecordStore] = None):
        self.record_store = record_store
        self.files: Dict[str, Optional[str]] = {path: read_text(path) for path in files}
        if record_store is not None:
            for entry in record_store.record_files():
                path = os.path.join(record_store.base_path, entry)
                self.files[path] = read_text(path)
        self._undo: List[Callable[[], None]] = []

    def on_rollback(self, action: Callable[[], None]):
        self._undo.append(action)

    def restore(self):
        if self.record_store is not None:
            for entry in self.record_store.record_files():
                path = os.path.join(self.record_store.base_path, entry)
                if path not in self.files:
                    self.files[path] = None
        for path, content in self.files.items():
            try:
                restore_file(path, content)
            except OSError as e:
                logger.error(f"Rollback could not restore {path}: {e}")
        for action in reversed(self._undo):
            try:
                action()
            except Exception as e:
                logger.error(f"Rollback step failed: {e}")


class ShareEngine:
    def __init__(
        self,
        settings_store: Optional[SettingsStore] = None,
        smb_manager: Optional[SMBManager] = None,
        quota_manager: Optional[QuotaManager] = None,
    ):
        self.settings_store = settings_store or SettingsStore()
        self.smb = smb_manager or SMBManager()
        self.quota = quota_manager or QuotaManager()
        self._lock = threading.RLock()

    def _store(self, settings: Optional[AppSettings] = None) -> ShareRecordStore:
        settings = settings or self.get_settings()
        return ShareRecordStore(settings.share_config_base_path)

    def _composer(self, store: ShareRecordStore) -> ShareComposer:
        return ShareComposer(store, smb_conf_path=self.smb.smb_conf_path)

    @contextlib.contextmanager
    def _transaction(self, files: Iterable[str], record_store: Optional[ShareRecordStore] = None):
        snapshot = _Snapshot(files, record_store)
        try:
            yield snapshot
        except Exception:
            logger.warning("Share change failed, restoring previous configuration")
            snapshot.restore()
            raise

    def _commit(self, composer: ShareComposer):
        """Make the composed configuration live, if the share include is switched on."""
        if composer.is_enabled():
            self.smb.commit_and_reload()
        else:
            logger.info("Share include is disabled, change staged without reload")

    # Status and reads

    def check_configured(self) -> bool:
        """Whether smb.conf includes the share records."""
        return self._composer(self._store()).is_enabled()

    def get_shares(self) -> List[Share]:
        return attach_usage(self._store().list(), self.quota)

    def get_share(self, share_id: str) -> Share:
        return self._store().get(share_id)

    def get_settings(self) -> AppSettings:
        return self.settings_store.load()

    def get_filesystem_usage(self, settings: Optional[AppSettings] = None) -> FilesystemUsage:
        return get_filesystem_usage(settings or self.get_settings())

    def suggest_share_path(self) -> str:
        settings = self.get_settings()
        return suggest_share_path(settings.default_parent_path, settings.default_mountpoint_name)

    # Share mutations

    def add_share(self, share: ShareCreate) -> List[Share]:
        with self._lock:
            store = self._store()
            composer = self._composer(store)
            store.validate(share)

            with self._transaction([composer.include_path], store) as tx:
                before = {s.id for s in store.list()}
                created = [s for s in store.add(share) if s.id not in before][0]
                composer.rebuild()
                if created.quota:
                    tx.on_rollback(lambda: self.quota.clear_quota(created))
                    self.quota.set_quota(created)
                self._commit(composer)

            return self.get_shares()

    def update_share(self, share: Share) -> List[Share]:
        with self._lock:
            store = self._store()
            composer = self._composer(store)
            previous = store.get(share.id)
            store.validate(share, exclude_id=share.id)

            with self._transaction([composer.include_path], store) as tx:
                store.update(share)
                updated = store.get(share.id)
                composer.rebuild()
                if (updated.quota, updated.path) != (previous.quota, previous.path):
                    tx.on_rollback(lambda: self.quota.set_quota(previous))
                    if updated.path != previous.path:
                        self.quota.clear_quota(previous)
                    self.quota.set_quota(updated)
                self._commit(composer)

            return self.get_shares()

    def delete_share(self, share_id: str) -> List[Share]:
        with self._lock:
            store = self._store()
            composer = self._composer(store)
            previous = store.get(share_id)

            with self._transaction([composer.include_path], store):
                store.remove(share_id)
                composer.rebuild()
                self._commit(composer)

            try:
                self.quota.clear_quota(previous)
            except QuotaError as e:
                logger.warning(f"Share '{previous.name}' removed but its quota was not cleared: {e}")

            return self.get_shares()

    # Structural changes

    def create_config_directories(self):
        with self._lock:
            composer = self._composer(self._store())
            composer.create_config_directories(os.path.dirname(self.settings_store.path))

    def enable_config(self, commit: bool = False):
        """Include the share records in smb.conf.

        With ``commit`` the result is also validated and reloaded, and smb.conf
        is put back as it was when Samba rejects it.
        """
        with self._lock:
            composer = self._composer(self._store())
            if not commit:
                composer.enable()
                return
            with self._transaction([self.smb.smb_conf_path, composer.include_path]):
                composer.enable()
                self.smb.commit_and_reload()

    def disable_config(self, commit: bool = False):
        with self._lock:
            composer = self._composer(self._store())
            if not commit:
                composer.disable()
                return
            with self._transaction([self.smb.smb_conf_path]):
                composer.disable()
                self.smb.commit_and_reload()

    def commit_and_reload(self):
        with self._lock:
            self.smb.commit_and_reload()

    def save_settings(self, settings: AppSettings):
        """Persist settings. A new share base path is provisioned, composed and committed."""
        errors = validate_settings_paths(settings)
        if errors:
            raise ShareValidationError(errors)

        with self._lock:
            current = self.get_settings()
            if settings.share_config_base_path == current.share_config_base_path:
                self.settings_store.save(settings)
                return

            old_composer = self._composer(self._store(current))
            new_composer = self._composer(self._store(settings))
            was_enabled = old_composer.is_enabled()

            files = [self.settings_store.path, self.smb.smb_conf_path, new_composer.include_path]
            with self._transaction(files):
                self.settings_store.save(settings)
                new_composer.create_config_directories(os.path.dirname(self.settings_store.path))
                new_composer.rebuild()
                if was_enabled:
                    new_composer.enable()
                self.smb.commit_and_reload()

            logger.info(
                f"Share base path moved from {current.share_config_base_path} "
                f"to {settings.share_config_base_path}"
            )


_engine: Optional[ShareEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> ShareEngine:
    """The process wide engine, so every caller shares one writer lock."""
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = ShareEngine()
    return _engine
