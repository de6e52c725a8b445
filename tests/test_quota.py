import os
import subprocess
import tempfile
import unittest
from unittest.mock import ANY, MagicMock, patch

from shareden.shares.errors import QuotaError
from shareden.shares.models import Share
from shareden.shares.quota import QuotaManager, find_mountpoint


def partition(mountpoint, fstype="xfs", device="/dev/sdb1"):
    part = MagicMock()
    part.mountpoint = mountpoint
    part.fstype = fstype
    part.device = device
    return part


class TestFindMountpoint(unittest.TestCase):
    @patch('os.path.realpath', side_effect=lambda p: p)
    @patch('psutil.disk_partitions')
    def test_deepest_mountpoint_wins(self, mock_partitions, _):
        mock_partitions.return_value = [partition("/"), partition("/srv"), partition("/srvx")]
        self.assertEqual(find_mountpoint("/srv/media").mountpoint, "/srv")
        self.assertEqual(find_mountpoint("/srv").mountpoint, "/srv")
        self.assertEqual(find_mountpoint("/home").mountpoint, "/")

    @patch('psutil.disk_partitions', return_value=[])
    def test_nothing_mounted(self, _):
        self.assertIsNone(find_mountpoint("/srv"))


class TestQuotaManager(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.projects = os.path.join(self.tmpdir.name, "projects")
        self.projid = os.path.join(self.tmpdir.name, "projid")
        self.manager = QuotaManager(projects_file=self.projects, projid_file=self.projid)
        self.share = Share(id="abc", name="media", path="/srv/media", quota="10G")

    def tearDown(self):
        self.tmpdir.cleanup()

    def read(self, path):
        with open(path) as f:
            return f.read()

    @patch('shareden.shares.quota.find_mountpoint', return_value=partition("/srv"))
    @patch('shutil.which', return_value="/usr/sbin/xfs_quota")
    @patch('subprocess.run')
    def test_set_quota(self, mock_run, _which, _mount):
        mock_run.return_value = MagicMock(stdout="")

        self.manager.set_quota(self.share)

        self.assertEqual(self.read(self.projects), "10000:/srv/media\n")
        self.assertEqual(self.read(self.projid), "share_abc:10000\n")
        mock_run.assert_any_call(
            ["xfs_quota", "-x", "-c", "project -s share_abc", "/srv"],
            check=True, capture_output=True, text=True, timeout=ANY
        )
        mock_run.assert_any_call(
            ["xfs_quota", "-x", "-c", f"limit -p bhard={10 * 1024 ** 2}k share_abc", "/srv"],
            check=True, capture_output=True, text=True, timeout=ANY
        )

    @patch('shareden.shares.quota.find_mountpoint', return_value=partition("/srv"))
    @patch('shutil.which', return_value="/usr/sbin/xfs_quota")
    @patch('subprocess.run')
    def test_project_ids_are_allocated_once(self, mock_run, _which, _mount):
        mock_run.return_value = MagicMock(stdout="")
        other = Share(id="def", name="docs", path="/srv/docs", quota="1G")

        self.manager.set_quota(self.share)
        self.manager.set_quota(other)
        self.manager.set_quota(self.share.model_copy(update={"quota": "20G"}))

        self.assertEqual(self.read(self.projid), "share_def:10001\nshare_abc:10000\n")
        self.assertEqual(sorted(self.read(self.projects).splitlines()), ["10000:/srv/media", "10001:/srv/docs"])

    @patch('shareden.shares.quota.find_mountpoint', return_value=partition("/srv", fstype="ext4"))
    @patch('shutil.which', return_value="/usr/sbin/xfs_quota")
    @patch('subprocess.run')
    def test_set_quota_needs_xfs(self, mock_run, _which, _mount):
        with self.assertRaises(QuotaError):
            self.manager.set_quota(self.share)
        mock_run.assert_not_called()

    @patch('shutil.which', return_value=None)
    def test_set_quota_needs_xfs_quota(self, _which):
        with self.assertRaises(QuotaError):
            self.manager.set_quota(self.share)

    @patch('shareden.shares.quota.find_mountpoint', return_value=partition("/srv"))
    @patch('shutil.which', return_value="/usr/sbin/xfs_quota")
    @patch('subprocess.run')
    def test_xfs_quota_failure(self, mock_run, _which, _mount):
        mock_run.side_effect = subprocess.CalledProcessError(1, "xfs_quota", stderr="quotas not enabled")
        with self.assertRaises(QuotaError) as ctx:
            self.manager.set_quota(self.share)
        self.assertIn("quotas not enabled", ctx.exception.message)

    @patch('shareden.shares.quota.find_mountpoint', return_value=partition("/srv"))
    @patch('shutil.which', return_value="/usr/sbin/xfs_quota")
    @patch('subprocess.run')
    def test_clear_quota(self, mock_run, _which, _mount):
        mock_run.return_value = MagicMock(stdout="")
        self.manager.set_quota(self.share)
        mock_run.reset_mock()

        self.manager.clear_quota(self.share)

        mock_run.assert_called_once_with(
            ["xfs_quota", "-x", "-c", "limit -p bhard=0 share_abc", "/srv"],
            check=True, capture_output=True, text=True, timeout=ANY
        )
        self.assertEqual(self.read(self.projects), "")
        self.assertEqual(self.read(self.projid), "")

    @patch('subprocess.run')
    def test_clear_quota_without_project(self, mock_run):
        self.manager.clear_quota(self.share)
        mock_run.assert_not_called()

    @patch('shareden.shares.quota.find_mountpoint', return_value=partition("/srv"))
    @patch('shutil.which', return_value="/usr/sbin/xfs_quota")
    @patch('subprocess.run')
    def test_empty_quota_clears(self, mock_run, _which, _mount):
        mock_run.return_value = MagicMock(stdout="")
        self.manager.set_quota(self.share)

        self.manager.set_quota(self.share.model_copy(update={"quota": ""}))

        self.assertEqual(self.read(self.projid), "")

    @patch('shareden.shares.quota.find_mountpoint', return_value=partition("/srv"))
    @patch('shutil.which', return_value="/usr/sbin/xfs_quota")
    @patch('subprocess.run')
    def test_failed_write_keeps_project_files(self, mock_run, _which, _mount):
        mock_run.return_value = MagicMock(stdout="")
        self.manager.set_quota(self.share)
        projects_before = self.read(self.projects)
        projid_before = self.read(self.projid)
        other = Share(id="def", name="docs", path="/srv/docs", quota="1G")

        with patch('shareden.shares.utils.os.replace', side_effect=OSError(28, "No space left on device")):
            with self.assertRaises(QuotaError) as ctx:
                self.manager.set_quota(other)

        self.assertIn("No space left on device", ctx.exception.message)
        self.assertEqual(self.read(self.projects), projects_before)
        self.assertEqual(self.read(self.projid), projid_before)
        self.assertEqual(sorted(os.listdir(self.tmpdir.name)), ["projects", "projid"])

    @patch('subprocess.run')
    def test_report(self, mock_run):
        mock_run.return_value = MagicMock(stdout=(
            "share_abc   2048      0   10485760     00 [--------]\n"
            "share_def      0      0    1048576     00 [--------]\n"
            "\n"
        ))
        self.assertEqual(self.manager.report("/srv"), {"share_abc": "2048", "share_def": "0"})

    @patch('shareden.shares.quota.find_mountpoint', return_value=partition("/srv"))
    @patch('shutil.which', return_value="/usr/sbin/xfs_quota")
    @patch('subprocess.run')
    def test_used_by_share(self, mock_run, _which, _mount):
        mock_run.return_value = MagicMock(stdout="share_abc 4096 0 0 00 [--------]\n")
        other = Share(id="nope", name="docs", path="/srv/docs")

        used = self.manager.used_by_share([self.share, other])

        self.assertEqual(used, {"abc": "4096"})
        self.assertEqual(mock_run.call_count, 1)

    @patch('shutil.which', return_value=None)
    def test_used_by_share_without_tool(self, _which):
        self.assertEqual(self.manager.used_by_share([self.share]), {})


if __name__ == '__main__':
    unittest.main()
