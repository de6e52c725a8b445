import click

@click.group()
def settings():
    """Show and change application settings."""
    pass

@settings.command(name="show")
def show_settings():
    """Print the current settings."""
    from shareden.shares.engine import get_engine
    current = get_engine().get_settings()
    click.echo(f"Share config base path: {current.share_config_base_path}")
    click.echo(f"Default parent path: {current.default_parent_path}")
    click.echo(f"Default mountpoint name: {current.default_mountpoint_name}")
    click.echo(f"Theme: {current.theme}")

@settings.command(name="set")
@click.option("--share-config-base-path", default=None, help="Directory holding one record per share.")
@click.option("--default-parent-path", default=None, help="Parent directory suggested for new shares.")
@click.option("--default-mountpoint-name", default=None, help="Directory name suggested for new shares.")
@click.option("--theme", type=click.Choice(["dark", "light"]), default=None, help="UI theme.")
def set_settings(share_config_base_path, default_parent_path, default_mountpoint_name, theme):
    """Change settings. Moving the share base path reloads samba."""
    from shareden.shares.engine import get_engine
    from shareden.shares.settings_store import parse_settings
    engine = get_engine()
    changes = {
        "share_config_base_path": share_config_base_path,
        "default_parent_path": default_parent_path,
        "default_mountpoint_name": default_mountpoint_name,
        "theme": theme,
    }
    try:
        data = engine.get_settings().model_dump()
        data.update({k: v for k, v in changes.items() if v is not None})
        engine.save_settings(parse_settings(data))
    except Exception as e:
        raise click.ClickException(f"Error saving settings: {e}")
    click.echo("Settings saved.")

@settings.command(name="usage")
@click.option("--raw", is_flag=True, help="Print kilobyte counts instead of sizes with units.")
def show_usage(raw):
    """Show usage of the filesystem holding the default parent path."""
    from shareden.shares.engine import get_engine
    from shareden.shares.sizes import from_kilobytes
    usage = get_engine().get_filesystem_usage()
    fmt = (lambda value: value) if raw else from_kilobytes
    click.echo(f"{usage.mountpoint} ({usage.filesystem})")
    click.echo(f"  Size: {fmt(usage.size)}")
    click.echo(f"  Avail: {fmt(usage.available)}")
    click.echo(f"  Used: {fmt(usage.used)} ({usage.used_percent})")
