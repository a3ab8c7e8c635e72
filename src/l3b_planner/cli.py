"""Click CLI: ``l3b-plan`` command group."""

from __future__ import annotations

import json
from datetime import datetime

import click
from loguru import logger

from l3b_planner.config import load_config
from l3b_planner.exit_codes import ExitCode, exit_code_from_tracker
from l3b_planner.logging import bind_job_context, setup_logging


def _parse_params(pairs):
    """``("genlai=1", "tiles_filter=T31UDP")`` -> dict."""
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--param")
        params[key.strip()] = value.strip()
    return params


def _build_handler(cfg, max_workers=None, dry_run=False):
    from l3b_planner.executor.local_executor import LocalExecutor
    from l3b_planner.handlers.local_context import LocalContext
    from l3b_planner.service import RequestsHandler

    executor = LocalExecutor(
        cfg.paths.scratch_root,
        max_workers=max_workers or cfg.executor.max_workers,
        dry_run=dry_run or cfg.executor.dry_run,
        otb_launcher=cfg.executor.otb_launcher,
        report_dir=cfg.paths.report_dir,
    )
    return RequestsHandler(LocalContext(cfg), executor)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------

@click.group(invoke_without_command=True)
@click.version_option(package_name="l3b-planner", prog_name="l3b-plan")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True),
              help="Path to planner YAML config.")
@click.option("--log-level", default="INFO",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option("--log-format", default="text",
              type=click.Choice(["text", "json"]),
              help="Log output format.")
@click.option("--show-config", is_flag=True, help="Print resolved config as YAML and exit.")
@click.pass_context
def l3b_plan(ctx: click.Context, config_path, log_level, log_format, show_config):
    """L3B vegetation-index job planner."""
    ctx.ensure_object(dict)
    bind_job_context(None)
    setup_logging(level=log_level, fmt=log_format)
    ctx.obj["cfg"] = load_config(config_path)

    if show_config:
        import dataclasses
        import yaml as _yaml
        click.echo(_yaml.dump(dataclasses.asdict(ctx.obj["cfg"]), default_flow_style=False))
        ctx.exit(ExitCode.SUCCESS)
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------

@l3b_plan.command()
@click.argument("products", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--site", "site_id", type=int, required=True)
@click.pass_context
def register(ctx, products, site_id):
    """Catalogue L2A product folders so jobs can use them as inputs."""
    from l3b_planner.errors import CatalogueInsertFailed, NoInputs
    from l3b_planner.handlers.local_context import LocalContext

    local = LocalContext(ctx.obj["cfg"])
    failed = 0
    for path in products:
        try:
            product_id = local.register_l2a_product(site_id, path)
            click.echo(f"{product_id}\t{path}")
        except (CatalogueInsertFailed, NoInputs) as exc:
            logger.error(str(exc))
            failed += 1

    if failed == len(products):
        ctx.exit(ExitCode.BAD_INPUT)
    ctx.exit(ExitCode.PARTIAL_FAILURE if failed else ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------

@l3b_plan.command()
@click.option("--site", "site_id", type=int, required=True)
@click.option("--processor-id", type=int, default=1)
@click.option("-i", "--input", "inputs", multiple=True,
              help="Input L2A product (path or catalogue name). Repeatable; default: all L2A of the site.")
@click.option("-p", "--param", "params", multiple=True, help="Job parameter KEY=VALUE. Repeatable.")
@click.option("--plan-only", is_flag=True, help="Build and print the task graph without running it.")
@click.option("--max-workers", type=int, default=None, help="Parallel tasks for the local executor.")
@click.option("--dry-run", is_flag=True, help="Log commands instead of running them.")
@click.pass_context
def submit(ctx, site_id, processor_id, inputs, params, plan_only, max_workers, dry_run):
    """Plan an L3B job and run it with the local executor."""
    cfg = ctx.obj["cfg"]
    parameters = _parse_params(params)
    if inputs:
        parameters["input_products"] = list(inputs)

    handler = _build_handler(cfg, max_workers=max_workers, dry_run=dry_run)
    request = {"site_id": site_id, "processor_id": processor_id, "parameters": parameters}
    if not handler.execute_processor(json.dumps(request)):
        ctx.exit(ExitCode.JOB_REJECTED)
        return

    job_id = handler.last_job_id()
    plan = handler.plans[job_id]
    click.echo(f"Job {job_id}: {len(plan.products)} products, {len(plan.graph)} tasks")

    if plan_only:
        click.echo(plan.graph.dump())
        ctx.exit(ExitCode.SUCCESS)
        return

    tracker = handler.run_job(job_id)
    ctx.exit(exit_code_from_tracker(tracker))


# ---------------------------------------------------------------------------
# schedule
# ---------------------------------------------------------------------------

@l3b_plan.command()
@click.option("--site", "site_id", type=int, required=True)
@click.option("--at", "scheduled", default=None,
              help="Scheduled instant (ISO format); default: now.")
@click.option("--product-type", default="L3B")
@click.option("--one-shot", is_flag=True, help="Process everything in the interval (task_repeat_type=0).")
@click.option("--submit", "do_submit", is_flag=True, help="Submit and run the job when valid.")
@click.pass_context
def schedule(ctx, site_id, scheduled, product_type, one_shot, do_submit):
    """Decide whether a scheduled L3B job would run, and on which inputs."""
    from l3b_planner.handlers.local_context import LocalContext
    from l3b_planner.handlers.scheduler import get_processing_definition
    from l3b_planner.models import JobStartType

    cfg = ctx.obj["cfg"]
    when = datetime.fromisoformat(scheduled) if scheduled else datetime.now()
    overrides = {"product_type": product_type}
    if one_shot:
        overrides["task_repeat_type"] = "0"

    definition = get_processing_definition(LocalContext(cfg), site_id, when, overrides)
    if not definition.is_valid:
        click.echo(f"No job for site {site_id} at {when:%Y-%m-%d %H:%M}")
        ctx.exit(ExitCode.NO_WORK)
        return

    click.echo(f"Job for site {site_id}: {len(definition.products)} input products")
    for product in definition.products[:10]:
        click.echo(f"  {product.name}")
    if len(definition.products) > 10:
        click.echo(f"  ... and {len(definition.products) - 10} more")

    if not do_submit:
        ctx.exit(ExitCode.SUCCESS)
        return

    parameters = definition.parameters
    parameters["input_products"] = [p.full_path for p in definition.products]
    handler = _build_handler(cfg)
    request = {"site_id": site_id, "parameters": parameters, "start_type": JobStartType.SCHEDULED}
    if not handler.execute_processor(json.dumps(request)):
        ctx.exit(ExitCode.JOB_REJECTED)
        return
    tracker = handler.run_job(handler.last_job_id())
    ctx.exit(exit_code_from_tracker(tracker))


# ---------------------------------------------------------------------------
# jobs / products
# ---------------------------------------------------------------------------

@l3b_plan.command()
@click.option("--limit", type=int, default=20)
@click.pass_context
def jobs(ctx, limit):
    """List recent jobs (newest first)."""
    from l3b_planner.tracking import JobStore

    store = JobStore(ctx.obj["cfg"].paths.jobs_dir)
    job_ids = store.list_jobs()[:limit]
    if not job_ids:
        click.echo("No jobs found.")
        ctx.exit(ExitCode.SUCCESS)
        return

    click.echo(f"{'Job':>6}  {'Site':>5}  {'Start type':<10}  {'Status':<10}  Created")
    click.echo("-" * 70)
    for job_id in job_ids:
        r = store.load(job_id)
        click.echo(f"{r.job_id:>6}  {r.site_id:>5}  {r.start_type:<10}  {r.status:<10}  {r.created_at[:19]}")


@l3b_plan.command()
@click.option("--site", "site_id", type=int, required=True)
@click.option("--type", "product_type", default="L3B",
              type=click.Choice(["L2A", "L3B", "L3C"], case_sensitive=False))
@click.pass_context
def products(ctx, site_id, product_type):
    """List catalogued products of a site."""
    from l3b_planner.models import ProductType
    from l3b_planner.tracking import ProductCatalogue

    catalogue = ProductCatalogue(ctx.obj["cfg"].paths.catalogue_path)
    rows = catalogue.products(site_id, ProductType[product_type.upper()])
    if not rows:
        click.echo("No products found.")
        ctx.exit(ExitCode.SUCCESS)
        return
    for p in rows:
        click.echo(f"{p.product_id:>6}  {p.created:%Y-%m-%d}  {p.name}")
