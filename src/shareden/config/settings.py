import os


def _csv_env(name: str, default: str):
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    smb_conf_path = os.getenv("SHAREDEN_SMB_CONF_PATH", "/etc/samba/smb.conf")
    settings_path = os.getenv("SHAREDEN_SETTINGS_PATH", "/etc/shareden/settings.yaml")

    # Defaults used until a settings file has been saved
    share_config_base_path = os.getenv("SHAREDEN_SHARE_CONFIG_BASE_PATH", "/etc/shareden/shares")
    default_parent_path = os.getenv("SHAREDEN_DEFAULT_PARENT_PATH", "/srv")
    default_mountpoint_name = os.getenv("SHAREDEN_DEFAULT_MOUNTPOINT_NAME", "smbdatastore")
    theme = os.getenv("SHAREDEN_THEME", "dark")

    # Seconds before an external command (testparm, smbcontrol, xfs_quota) is abandoned
    command_timeout = int(os.getenv("SHAREDEN_COMMAND_TIMEOUT", "30"))

    # XFS project quota bookkeeping
    projects_file = os.getenv("SHAREDEN_PROJECTS_FILE", "/etc/projects")
    projid_file = os.getenv("SHAREDEN_PROJID_FILE", "/etc/projid")
    project_id_base = int(os.getenv("SHAREDEN_PROJECT_ID_BASE", "10000"))

    cors_origins = _csv_env("SHAREDEN_CORS_ORIGINS", "http://localhost:3000")

config = Config()
