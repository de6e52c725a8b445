import click

from shareden.shares.sizes import SORTABLE_KEYS


def _print_shares(shares, human):
    from shareden.shares.sizes import from_kilobytes

    if not shares:
        click.echo("No shares found.")
        return

    for share in shares:
        used = share.used
        if human and used is not None:
            used = from_kilobytes(used)
        click.echo(f"Name: {share.name}")
        click.echo(f"  ID: {share.id}")
        click.echo(f"  Path: {share.path}")
        click.echo(f"  Comment: {share.comment}")
        click.echo(f"  Read Only: {share.read_only}")
        click.echo(f"  Guest OK: {share.guest_ok}")
        click.echo(f"  Browsable: {share.browsable}")
        click.echo(f"  Quota: {share.quota or 'none'}")
        click.echo(f"  Used: {used if used is not None else 'N/A'}")
        if share.advanced_settings:
            click.echo("  Advanced:")
            for line in share.advanced_settings.splitlines():
                click.echo(f"    {line}")
        click.echo("-" * 20)


@click.group()
def shares():
    """Manage shares."""
    pass

@shares.command(name="list")
@click.option("--sort", "sort_key", type=click.Choice(SORTABLE_KEYS), default="name", help="Column to sort by.")
@click.option("--descending", is_flag=True, help="Reverse the sort order.")
@click.option("--human", is_flag=True, help="Show used space with units.")
def list_shares(sort_key, descending, human):
    """List managed shares."""
    from shareden.shares.engine import get_engine
    from shareden.shares.sizes import sort_shares
    try:
        shares = sort_shares(get_engine().get_shares(), sort_key, descending)
    except Exception as e:
        raise click.ClickException(f"Error listing shares: {e}")
    _print_shares(shares, human)

@shares.command(name="add")
@click.argument("name")
@click.argument("path", required=False)
@click.option("--comment", default="", help="Share comment")
@click.option("--readonly", is_flag=True, help="Set read only")
@click.option("--browsable/--no-browsable", default=True, help="Set browsable")
@click.option("--guest-ok", is_flag=True, help="Allow guest access")
@click.option("--quota", default="", help="Quota, e.g. 500M, 10G, 2TB")
@click.option("--advanced", default="", help="Extra samba parameters, one per line")
def add_share(name, path, comment, readonly, browsable, guest_ok, quota, advanced):
    """Create a share. PATH defaults to the suggested path from the settings."""
    from shareden.shares.engine import get_engine
    from shareden.shares.models import ShareCreate
    engine = get_engine()
    try:
        share = ShareCreate(
            name=name,
            path=path or engine.suggest_share_path(),
            comment=comment,
            read_only=readonly,
            browsable=browsable,
            guest_ok=guest_ok,
            quota=quota,
            advanced_settings=advanced.replace("\\n", "\n"),
        )
        engine.add_share(share)
    except Exception as e:
        raise click.ClickException(f"Error creating share: {e}")
    click.echo(f"Share '{name}' created.")

@shares.command(name="update")
@click.argument("share_id")
@click.option("--name", default=None, help="New share name")
@click.option("--path", default=None, help="New share path")
@click.option("--comment", default=None, help="Share comment")
@click.option("--readonly/--writable", default=None, help="Set read only")
@click.option("--browsable/--no-browsable", default=None, help="Set browsable")
@click.option("--guest-ok/--no-guest-ok", default=None, help="Allow guest access")
@click.option("--quota", default=None, help="Quota, empty string removes it")
@click.option("--advanced", default=None, help="Extra samba parameters, one per line")
def update_share(share_id, name, path, comment, readonly, browsable, guest_ok, quota, advanced):
    """Change an existing share. Options left out keep their value."""
    from shareden.shares.engine import get_engine
    engine = get_engine()
    changes = {
        "name": name,
        "path": path,
        "comment": comment,
        "read_only": readonly,
        "browsable": browsable,
        "guest_ok": guest_ok,
        "quota": quota,
        "advanced_settings": advanced.replace("\\n", "\n") if advanced is not None else None,
    }
    try:
        current = engine.get_share(share_id)
        updated = current.model_copy(update={k: v for k, v in changes.items() if v is not None})
        engine.update_share(updated)
    except Exception as e:
        raise click.ClickException(f"Error updating share: {e}")
    click.echo(f"Share '{updated.name}' updated.")

@shares.command(name="delete")
@click.argument("share_id")
@click.confirmation_option(prompt="Are you sure you want to delete this share?")
def delete_share(share_id):
    """Delete a share. The shared directory itself is left untouched."""
    from shareden.shares.engine import get_engine
    try:
        get_engine().delete_share(share_id)
    except Exception as e:
        raise click.ClickException(f"Error deleting share: {e}")
    click.echo(f"Share '{share_id}' deleted.")

@shares.command(name="status")
def config_status():
    """Show whether samba loads the managed shares."""
    from shareden.shares.engine import get_engine
    engine = get_engine()
    settings = engine.get_settings()
    if engine.check_configured():
        click.echo(f"Samba includes shares from {settings.share_config_base_path}.")
    else:
        click.echo(f"Samba does NOT include shares from {settings.share_config_base_path}. Run 'shareden shares enable'.")

@shares.command(name="enable")
def enable_config():
    """Wire the managed shares into smb.conf and reload samba."""
    from shareden.shares.engine import get_engine
    engine = get_engine()
    try:
        engine.create_config_directories()
        engine.enable_config(commit=True)
    except Exception as e:
        raise click.ClickException(f"Error enabling share configuration: {e}")
    click.echo("Share configuration enabled.")

@shares.command(name="disable")
def disable_config():
    """Stop samba from loading the managed shares, keeping their records."""
    from shareden.shares.engine import get_engine
    engine = get_engine()
    try:
        engine.disable_config(commit=True)
    except Exception as e:
        raise click.ClickException(f"Error disabling share configuration: {e}")
    click.echo("Share configuration disabled.")

@shares.command(name="reload")
def reload_config():
    """Validate the configuration and reload samba."""
    from shareden.shares.engine import get_engine
    try:
        get_engine().commit_and_reload()
    except Exception as e:
        raise click.ClickException(f"Error reloading samba: {e}")
    click.echo("Samba configuration reloaded.")


@shares.group()
def samba():
    """Manage the Samba service."""
    pass

@samba.command(name="check")
def check_samba():
    """Check if Samba is installed."""
    from shareden.shares.smb import SMBManager
    manager = SMBManager()
    if manager.check_installed():
        click.echo("Samba is installed.")
    else:
        click.echo("Samba is NOT installed.")

@samba.command(name="start")
def start_samba():
    """Start the Samba service."""
    from shareden.shares.smb import SMBManager
    if not SMBManager().start_service():
        raise click.ClickException("Could not start the Samba service.")
    click.echo("Samba service started.")

@samba.command(name="stop")
def stop_samba():
    """Stop the Samba service."""
    from shareden.shares.smb import SMBManager
    if not SMBManager().stop_service():
        raise click.ClickException("Could not stop the Samba service.")
    click.echo("Samba service stopped.")

@samba.command(name="restart")
def restart_samba():
    """Restart the Samba service."""
    from shareden.shares.smb import SMBManager
    if not SMBManager().restart_service():
        raise click.ClickException("Could not restart the Samba service.")
    click.echo("Samba service restarted.")

@samba.command(name="status")
def status_samba():
    """Get the status of the Samba service."""
    from shareden.shares.smb import SMBManager
    manager = SMBManager()
    status = manager.get_status()
    click.echo(f"Samba service status: {status}")
