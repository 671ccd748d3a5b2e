#!/usr/bin/env python3
"""
evshift Command Line Interface

Batch exposure adjustments for darktable images: shift exposure by a fixed EV
amount, or equalize a bracketed/uneven series against its first image.
"""

import logging
from fractions import Fraction
from pathlib import Path
from typing import List, Optional

import click
from exiftool.exceptions import ExifToolException

from ..actions import ACTIONS, NEEDS_EXIF, get_action
from ..config import get_config_value, load_config
from ..errors import ExposureError
from ..exposure.ev import compute_ev
from ..host import create_host
from ..io.images import Image, ImageLoader
from ..processing.adjuster import ExposureAdjuster
from ..processing.report import BatchReport
from ..utils.logging import setup_console_logging
from ..utils.xmp_sidecar import read_latest_exposure

logger = logging.getLogger(__name__)

IMAGES_ARGUMENT = click.argument(
    'images', nargs=-1, required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)


class EVType(click.ParamType):
    """EV amount: decimals or fractions such as 1, -0.5, +1/3."""
    name = 'ev'

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return float(Fraction(str(value).strip()))
        except (ValueError, ZeroDivisionError):
            self.fail(f"{value!r} is not a valid EV amount", param, ctx)


EV = EVType()


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    evshift - exposure adjustments for darktable from the command line

    Reads the latest exposure module settings from each image's XMP sidecar,
    computes new settings and records them as a new history step.
    """
    if ctx.obj is None:
        ctx.obj = {}

    cfg = load_config(config)

    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    else:
        level = get_config_value(cfg, 'logging.level', 'INFO')

    setup_console_logging(
        level=level,
        color=get_config_value(cfg, 'logging.color', True),
        fmt=get_config_value(cfg, 'logging.format',
                             '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )

    ctx.obj['config'] = cfg
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


def _build_adjuster(ctx, dry_run: bool) -> ExposureAdjuster:
    config = ctx.obj.get('config', {})
    backend = 'dry-run' if dry_run else get_config_value(config, 'host.backend', 'xmp')
    try:
        host = create_host(backend, temp_dir=get_config_value(config, 'styles.temp_dir'))
    except ValueError as e:
        raise click.ClickException(str(e))

    return ExposureAdjuster(
        host,
        style_prefix=get_config_value(config, 'styles.name_prefix', 'temp_style_'),
        respect_history_end=get_config_value(config, 'sidecar.respect_history_end', False),
        progress=not ctx.obj.get('quiet', False),
    )


def _naming(ctx) -> str:
    return get_config_value(ctx.obj.get('config', {}), 'sidecar.naming', 'append')


def _images_without_exif(ctx, paths) -> List[Image]:
    return [Image.from_path(path, _naming(ctx)) for path in paths]


def _images_with_exif(ctx, paths) -> List[Image]:
    config = ctx.obj.get('config', {})
    try:
        with ImageLoader(naming=_naming(ctx),
                         executable=get_config_value(config, 'exiftool.executable')) as loader:
            return loader.load_all(paths)
    except (ExifToolException, OSError) as e:
        raise click.ClickException(f"Could not read EXIF metadata: {e}")


def _finish(ctx, report: BatchReport):
    if not ctx.obj.get('quiet', False) or not report.ok:
        report.print_summary()
    if not report.ok:
        ctx.exit(1)


@main.command()
@click.option('--ev', 'delta_ev', type=EV, required=True,
              help='EV amount to add, e.g. 1, -0.5, +1/3')
@click.option('--dry-run', is_flag=True, help='Show what would be done without writing')
@IMAGES_ARGUMENT
@click.pass_context
def adjust(ctx, delta_ev: float, dry_run: bool, images):
    """
    Shift the exposure of IMAGES by a fixed EV amount.
    """
    adjuster = _build_adjuster(ctx, dry_run)
    report = adjuster.adjust_by(_images_without_exif(ctx, images), delta_ev)
    _finish(ctx, report)


@main.command()
@click.option('--dry-run', is_flag=True, help='Show what would be done without writing')
@IMAGES_ARGUMENT
@click.pass_context
def equalize(ctx, dry_run: bool, images):
    """
    Equalize the exposure of IMAGES to the first one.

    Uses aperture, shutter time and ISO from EXIF; the first image is the
    reference and is left untouched.
    """
    adjuster = _build_adjuster(ctx, dry_run)
    selection = _images_with_exif(ctx, images)
    try:
        report = adjuster.equalize(selection)
    except ExposureError as e:
        raise click.ClickException(str(e))
    _finish(ctx, report)


@main.command()
@click.argument('key', type=click.Choice([action.key for action in ACTIONS]))
@click.option('--dry-run', is_flag=True, help='Show what would be done without writing')
@IMAGES_ARGUMENT
@click.pass_context
def action(ctx, key: str, dry_run: bool, images):
    """
    Run a named action (see `evshift actions`) on IMAGES.
    """
    user_action = get_action(key)
    adjuster = _build_adjuster(ctx, dry_run)
    if user_action.key in NEEDS_EXIF:
        selection = _images_with_exif(ctx, images)
    else:
        selection = _images_without_exif(ctx, images)

    try:
        report = user_action.run(adjuster, selection)
    except ExposureError as e:
        raise click.ClickException(str(e))
    _finish(ctx, report)


@main.command()
def actions():
    """List the available named actions."""
    for user_action in ACTIONS:
        click.echo(f"{user_action.key:<12} {user_action.label}")


@main.command()
@click.option('--ev', 'with_ev', is_flag=True, help='Also compute EV from EXIF metadata')
@IMAGES_ARGUMENT
@click.pass_context
def show(ctx, with_ev: bool, images):
    """
    Show the current exposure settings of IMAGES.
    """
    config = ctx.obj.get('config', {})
    respect_history_end = get_config_value(config, 'sidecar.respect_history_end', False)
    selection = _images_with_exif(ctx, images) if with_ev else _images_without_exif(ctx, images)

    failures = 0
    for image in selection:
        try:
            params = read_latest_exposure(image.sidecar_path, respect_history_end=respect_history_end)
            if params is None:
                click.echo(f"{image.path}: no exposure entry", err=True)
                failures += 1
                continue

            line = (f"{image.path}: exposure {params.exposure:+.2f} EV, "
                    f"black {params.black:+.4f}, mode {params.mode}")
            if with_ev:
                line += f", EV {compute_ev(image.aperture, image.exposure_time, image.iso):.2f}"
            click.echo(line)
        except ExposureError as e:
            click.echo(f"{image.path}: [{type(e).__name__}] {e.args[0]}", err=True)
            failures += 1

    if failures:
        ctx.exit(1)


if __name__ == '__main__':
    main()
