"""Command-line runner: seed an evaluation and report on it."""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from evaluator.config import EvaluatorConfig, apply_overrides, get_env_config, load_evaluator_config
from evaluator.domains.scoring import (
    ConsensusReconciler,
    CriteriaCatalog,
    ScoreAggregator,
    ScoreStore,
    WeightedScorer,
    export_scores,
)
from evaluator.domains.vendors import STATUS_DISPLAY, VendorPipeline, export_vendors
from evaluator.errors import EvaluatorError, NotFoundError
from evaluator.store import InMemoryRecordStore
from evaluator.utils.io import load_yaml_file, write_output

type SeedKeys = dict[str, str]

console = Console()
logger = logging.getLogger(__name__)

CONFIG_FILE = Path(__file__).parent.parent / "evaluator.yaml"


@dataclass
class Services:
    store: InMemoryRecordStore
    pipeline: VendorPipeline
    scores: ScoreStore
    aggregator: ScoreAggregator
    reconciler: ConsensusReconciler
    catalog: CriteriaCatalog
    scorer: WeightedScorer


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def load_config(env: str, config_path: Path | None = None) -> EvaluatorConfig:
    config = load_evaluator_config(env)
    config_path = config_path or CONFIG_FILE
    if config_path.exists():
        return apply_overrides(config, load_yaml_file(config_path))

    # Fall back to [tool.evaluator] in pyproject.toml
    return apply_overrides(config, get_env_config())


def build_services(config: EvaluatorConfig) -> Services:
    store = InMemoryRecordStore()
    pipeline = VendorPipeline(store, config)
    scores = ScoreStore(store, config)
    aggregator = ScoreAggregator(scores)
    reconciler = ConsensusReconciler(aggregator)
    catalog = CriteriaCatalog(store)
    return Services(
        store=store,
        pipeline=pipeline,
        scores=scores,
        aggregator=aggregator,
        reconciler=reconciler,
        catalog=catalog,
        scorer=WeightedScorer(pipeline, catalog, scores, reconciler),
    )


def _seed_ref(keys: SeedKeys, kind: str, key: str) -> str:
    try:
        return keys[key]
    except KeyError:
        raise NotFoundError(f"seed {kind}", key) from None


async def load_seed(services: Services, seed: dict, project_id: str) -> SeedKeys:
    """Load a seed mapping into the store, returning seed key -> record id.

    Sections are applied in order: vendors, transitions, categories (with
    their criteria), scores, consensus. Vendors and criteria are referenced
    by their seed ``key`` (falling back to their name).
    """
    keys: SeedKeys = {}

    for entry in seed.get("vendors", []):
        vendor = await services.pipeline.create_vendor(
            project_id,
            entry["name"],
            description=entry.get("description"),
            website=entry.get("website"),
            created_by=entry.get("created_by"),
        )
        keys[entry.get("key", entry["name"])] = vendor.id

    for entry in seed.get("transitions", []):
        await services.pipeline.transition(
            _seed_ref(keys, "vendor", entry["vendor"]), entry["to"], entry["actor"], entry.get("note"),
        )

    for entry in seed.get("categories", []):
        category = await services.catalog.add_category(project_id, entry["name"], entry["weight"])
        for item in entry.get("criteria", []):
            criterion = await services.catalog.add_criterion(
                project_id, category.id, item["name"], item.get("weight", 1.0),
            )
            keys[item.get("key", item["name"])] = criterion.id

    for entry in seed.get("scores", []):
        await services.scores.save_score(
            _seed_ref(keys, "vendor", entry["vendor"]),
            _seed_ref(keys, "criterion", entry["criterion"]),
            entry["evaluator"],
            entry["value"],
            rationale=entry.get("rationale"),
            status=entry.get("status", "draft"),
        )

    for entry in seed.get("consensus", []):
        await services.reconciler.save_consensus(
            _seed_ref(keys, "vendor", entry["vendor"]),
            _seed_ref(keys, "criterion", entry["criterion"]),
            entry["value"],
            entry.get("rationale"),
            entry["determined_by"],
        )

    logger.info("Seeded project %s with %d keyed records", project_id, len(keys))
    return keys


async def print_board(services: Services, project_id: str) -> None:
    grouped = await services.pipeline.group_by_stage(project_id)
    table = Table(title=f"Vendor pipeline: {project_id}")
    table.add_column("Stage")
    table.add_column("Count", justify="right")
    table.add_column("Vendors")

    for status, vendors in grouped.items():
        display = STATUS_DISPLAY[status]
        table.add_row(
            f"[{display.color}]{display.label}[/{display.color}]",
            str(len(vendors)),
            ", ".join(v.name for v in vendors),
        )
    console.print(table)


async def print_comparison(services: Services, vendor_id: str) -> None:
    vendor = await services.pipeline.get_vendor(vendor_id)
    matrix = await services.aggregator.compare_vendor(vendor.id)
    names = {c.id: c.name for c in await services.catalog.list_criteria(vendor.evaluation_project_id)}

    table = Table(title=f"Score comparison: {vendor.name}")
    for column in ("Criterion", "Scores", "Average", "Range", "Tier", "Reconcile"):
        table.add_column(column)

    for row in matrix.to_dict("records"):
        match row["tier"]:
            case "low":
                tier = "[green]low[/green]"
            case "medium":
                tier = "[yellow]medium[/yellow]"
            case "high":
                tier = "[red]high[/red]"
            case _:
                tier = "-"
        table.add_row(
            names.get(row["criterion_id"], row["criterion_id"]),
            str(row["count"]),
            f"{row['average']:.2f}" if row["count"] else "-",
            f"{row['min']:.0f}-{row['max']:.0f}" if row["count"] else "-",
            tier,
            "[red]✗[/red]" if row["needs_reconciliation"] else "[green]✓[/green]",
        )
    console.print(table)


async def print_ranking(services: Services, project_id: str) -> None:
    ranking = await services.scorer.rank_vendors(project_id)
    table = Table(title=f"Vendor ranking: {project_id}")
    table.add_column("#", justify="right")
    table.add_column("Vendor")
    table.add_column("Status")
    table.add_column("Total", justify="right")

    for row in ranking.itertuples(index=False):
        table.add_row(str(row.rank), row.name, row.status, f"{row.total_score:.1f}")
    console.print(table)


async def export_all(services: Services, project_id: str, out_dir: Path) -> None:
    console.print(f"[bold]Exporting project {project_id}...[/bold]")
    write_output(await export_vendors(services.pipeline, project_id), out_dir / "vendors.csv")
    write_output(await export_scores(services.scores, project_id), out_dir / "scores.csv")


async def run(args: argparse.Namespace, config: EvaluatorConfig) -> None:
    services = build_services(config)
    seed = load_yaml_file(args.seed) if args.seed else {}
    project_id = args.project or seed.get("project")
    if not project_id:
        console.print("[red]No evaluation project given (use --project or a seed 'project' key)[/red]")
        sys.exit(1)

    keys = await load_seed(services, seed, project_id)

    if args.board:
        await print_board(services, project_id)
    if args.compare:
        await print_comparison(services, keys.get(args.compare, args.compare))
    if args.ranking:
        await print_ranking(services, project_id)
    if args.export:
        await export_all(services, project_id, Path(args.export))


def main():
    parser = argparse.ArgumentParser(description="Run a vendor evaluation")
    parser.add_argument("--seed", type=Path, help="YAML seed with vendors, criteria and scores")
    parser.add_argument("--project", type=str, help="Evaluation project id")
    parser.add_argument("--board", action="store_true", help="Show vendors grouped by stage")
    parser.add_argument("--compare", type=str, metavar="VENDOR", help="Show the score comparison for a vendor")
    parser.add_argument("--ranking", action="store_true", help="Show the weighted vendor ranking")
    parser.add_argument("--export", type=str, metavar="DIR", help="Write vendor and score CSVs to DIR")
    parser.add_argument("--env", default="development", choices=["production", "staging", "development"])
    parser.add_argument("--config", type=Path, help="Path to an evaluator.yaml")
    args = parser.parse_args()

    try:
        config = load_config(args.env, args.config)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        sys.exit(1)
    configure_logging(config.log_level)

    try:
        asyncio.run(run(args, config))
    except EvaluatorError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
