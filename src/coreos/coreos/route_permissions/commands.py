from __future__ import annotations

import click
from flask import Flask, current_app

from ..container import Container
from ..core.exceptions import DomainError
from .discovery import RouteDiscoveryService
from .service import describe


def register(app: Flask, container: Container) -> None:
    """Attach the route permission console commands to `flask`."""

    @app.cli.command("routes:sync")
    @click.option("--dry-run", is_flag=True, help="Show what would be synced without making changes.")
    def routes_sync(dry_run: bool) -> None:
        """Discover application routes and sync them with the permissions table."""
        click.echo("Discovering application routes...")
        result = container.route_permission_service.sync_routes(RouteDiscoveryService(current_app), dry_run=dry_run)

        if dry_run:
            click.echo(f"Found {result.discovered} discoverable routes:")
            by_group: dict[str, list] = {}
            for route in result.routes:
                by_group.setdefault(route.group_name, []).append(route)
            for group_name, routes in by_group.items():
                click.echo(f"\n{group_name}")
                for route in routes:
                    click.echo(f"   {describe(route)}")
                    if route.controller_class:
                        click.echo(f"      {route.controller_class}:{route.controller_method}")
            click.echo("\nThis was a dry run. Run without --dry-run to sync the routes.")
            return

        click.echo("Route synchronization completed!")
        click.echo(f"  Routes Discovered:  {result.discovered}")
        click.echo(f"  New Routes Added:   {result.new}")
        click.echo(f"  Routes Updated:     {result.updated}")
        click.echo(f"  Routes Deactivated: {result.deactivated}")

        stats = container.route_permission_service.stats()
        click.echo("Current Route Statistics:")
        click.echo(f"  Total Routes:            {stats.total_routes}")
        click.echo(f"  Active Routes:           {stats.active_routes}")
        click.echo(f"  Protected Routes:        {stats.protected_routes}")
        click.echo(f"  Routes with Permissions: {stats.routes_with_permissions}")
        click.echo(f"  Route Groups:            {stats.total_groups}")
        if result.new or result.updated or result.deactivated:
            click.echo("Remember to assign permissions to new routes in the access control API.")

    @app.cli.command("routes:bulk-assign")
    @click.option("--group", default=None, help="Route group to assign to.")
    @click.option("--permission", default=None, help="Permission to assign.")
    @click.option("--role", default=None, help="Role to assign.")
    @click.option("--list-groups", is_flag=True, help="List all available route groups.")
    @click.option("--smart", is_flag=True, help="Use the built-in group to permission map.")
    def routes_bulk_assign(group, permission, role, list_groups: bool, smart: bool) -> None:
        """Bulk assign permissions and roles to route groups."""
        service = container.route_permission_service

        if list_groups:
            click.echo("Available Route Groups:")
            for group_name, count in service.list_groups():
                click.echo(f"  - {group_name} ({count} routes)")
            return

        if smart:
            click.echo("Performing smart route permission assignment...")
            updated = 0
            for item in service.bulk_assign_smart():
                names = ", ".join(item.permissions) or "open to all"
                if item.missing_permissions:
                    click.echo(f"  ! Permissions not found for {item.group_name}: {names}")
                    continue
                updated += item.route_count
                click.echo(f"  {item.group_name}: {item.route_count} routes -> {names}")
            click.echo(f"Smart assignment completed! Updated {updated} route permissions.")
            return

        if not group:
            raise click.ClickException(
                "Please specify a group with --group option or use --list-groups to see available groups"
            )
        try:
            updated = service.bulk_assign_group(group, permission=permission, role=role)
        except DomainError as e:
            raise click.ClickException(str(e))
        click.echo(f"Assigned to {updated} routes in '{group}'")

    @app.cli.command("routes:update-display-names")
    @click.option("--force", is_flag=True, help="Update even when a display name is already set.")
    def routes_update_display_names(force: bool) -> None:
        """Give every route a readable display name."""
        updated = container.route_permission_service.update_display_names(force=force)
        click.echo(f"Updated display names for {updated} routes!")

    @app.cli.command("pto:reset-year")
    @click.argument("year", type=int)
    def pto_reset_year(year: int) -> None:
        """Open PTO balances for YEAR from last year's balances and the users' policies."""
        try:
            result = container.pto_balance_service.reset_year(year)
        except DomainError as e:
            raise click.ClickException(str(e))
        click.echo(
            f"Created {result['created']} PTO balances for {year} "
            f"(skipped: {result['skipped_existing']} existing, {result['skipped_no_policy']} without policy)."
        )
