#!/usr/bin/env python3
"""
CLI for change detection, image patching and release runs.
"""

import asyncio
import click
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

from ..config.global_config_loader import load_global_config
from ..core.models import ChangeSet, PatchTarget
from ..core.exceptions import ReleaseToolError
from ..detect.change_detector import ChangeDetector
from ..detect.git_diff import changed_paths, resolve_commit, tag_from_commit
from ..patch.document import StructuredDocument
from ..patch.patcher import DocumentPatcher
from ..release.manager import ReleaseManager


logger = logging.getLogger(__name__)


def _collect_changes(
    paths: Tuple[str, ...],
    base: Optional[str],
    head: str,
    repo_root: str
) -> ChangeSet:
    """Changed paths from --path options, or from git diff base..head"""
    if paths:
        return ChangeSet.from_paths(paths)
    if base:
        return changed_paths(base, head, repo_root)
    raise click.UsageError("Provide --path, --base or --all")


@click.group()
@click.option('--config', 'config_path', default=None, help='Path to releasetool.yaml')
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              help='Set the logging level (overrides the config file)')
@click.pass_context
def cli(ctx, config_path, log_level):
    """Release helper: detect changed units and patch their image references"""
    try:
        global_cfg = load_global_config(config_path)
    except ReleaseToolError as e:
        raise click.ClickException(str(e))

    global_cfg.logging.apply(log_level)

    ctx.ensure_object(dict)
    ctx.obj['global_config'] = global_cfg


@cli.command()
@click.pass_context
def units(ctx):
    """List registered units"""
    global_cfg = ctx.obj['global_config']
    if not global_cfg.units:
        click.echo("No units configured")
        return

    for unit in global_cfg.units:
        click.echo(f"  Name: {unit.name}")
        click.echo(f"    Path prefix: {unit.path_prefix}")
        if unit.values_file:
            click.echo(f"    Values file: {unit.values_file}")
        repository = global_cfg.image_repository(unit)
        if repository:
            click.echo(f"    Image: {repository}")
        click.echo()
    click.echo(f"Total: {len(global_cfg.units)} unit(s)")


@cli.command()
@click.option('--base', default=None, help='Base revision for git diff')
@click.option('--head', default='HEAD', help='Head revision for git diff')
@click.option('--path', 'paths', multiple=True, help='Changed path (repeatable, skips git)')
@click.option('--all', 'force_all', is_flag=True, help='Mark every unit dirty')
@click.option('--repo-root', default='.', help='Git working tree')
@click.option('--format', 'output_format', default='text',
              type=click.Choice(['text', 'json', 'matrix']), help='Output format')
@click.pass_context
def detect(ctx, base, head, paths, force_all, repo_root, output_format):
    """Show which units need a rebuild"""
    global_cfg = ctx.obj['global_config']
    detector = ChangeDetector()

    try:
        if force_all:
            dirty = detector.detect_all(global_cfg.units)
        else:
            changes = _collect_changes(paths, base, head, repo_root)
            dirty = detector.detect(global_cfg.units, changes)
    except ReleaseToolError as e:
        raise click.ClickException(str(e))

    names = dirty.ordered(global_cfg.units)

    if output_format == 'matrix':
        click.echo(json.dumps(dirty.to_matrix(global_cfg.units)))
    elif output_format == 'json':
        click.echo(json.dumps({'dirty': names, 'forced': dirty.forced}))
    else:
        if not names:
            click.echo("No units changed")
            return
        for name in names:
            click.echo(name)


@cli.command()
@click.argument('document', type=click.Path(exists=True, dir_okay=False))
@click.option('--section', default=None, help='Section key (defaults to patch.section)')
@click.option('--field', 'field_name', required=True, help='Field to replace')
@click.option('--value', required=True, help='New value')
@click.option('--occurrence', default=None, type=int,
              help='Section occurrence, 0 is the first (defaults to patch.occurrence)')
@click.option('--dry-run', is_flag=True, help='Print the diff instead of writing')
@click.pass_context
def patch(ctx, document, section, field_name, value, occurrence, dry_run):
    """Replace one field of one section in DOCUMENT"""
    patch_cfg = ctx.obj['global_config'].patch
    target = PatchTarget(
        section=section or patch_cfg.section,
        field=field_name,
        occurrence=patch_cfg.occurrence if occurrence is None else occurrence
    )

    try:
        doc = StructuredDocument.from_path(document)
        patched = DocumentPatcher().patch(doc, target, value)
    except (ReleaseToolError, OSError) as e:
        raise click.ClickException(str(e))

    if patched is doc:
        click.echo(f"{document}: {target.describe()} already set to {value}")
        return

    if dry_run:
        click.echo(doc.diff(patched), nl=False)
        return

    try:
        patched.write_to(Path(document))
    except OSError as e:
        raise click.ClickException(f"cannot write {document}: {e}")
    click.echo(f"{document}: {target.describe()} -> {value}")


@cli.command()
@click.option('--tag', default=None, help='Image tag to deploy')
@click.option('--commit', default=None, help='Revision whose SHA becomes the tag')
@click.option('--base', default=None, help='Base revision for git diff')
@click.option('--head', default='HEAD', help='Head revision for git diff')
@click.option('--path', 'paths', multiple=True, help='Changed path (repeatable, skips git)')
@click.option('--all', 'force_all', is_flag=True, help='Update every unit')
@click.option('--repo-root', default='.', help='Git working tree')
@click.option('--dry-run', is_flag=True, help='Compute patches without writing')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
@click.pass_context
def release(ctx, tag, commit, base, head, paths, force_all, repo_root, dry_run, as_json):
    """Patch the image of every changed unit"""
    global_cfg = ctx.obj['global_config']

    try:
        if not tag:
            if not commit:
                raise click.UsageError("Provide --tag or --commit")
            tag = tag_from_commit(resolve_commit(commit, repo_root), global_cfg.release.tag_length)

        changes = None
        if not force_all:
            changes = _collect_changes(paths, base, head, repo_root)

        manager = ReleaseManager(global_cfg)
        report = asyncio.run(manager.run(tag, changes, force_all=force_all, dry_run=dry_run))
    except ReleaseToolError as e:
        logger.error(f"Release failed: {e}")
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        report.print_summary()
        if dry_run:
            for result in report.updated:
                click.echo(result.diff, nl=False)

    sys.exit(1 if report.has_failures() else 0)


if __name__ == "__main__":
    cli()
