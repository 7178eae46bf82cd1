"""File I/O utilities for seeds, configuration and report output."""

import tomllib
from pathlib import Path

import pandas as pd
import yaml
from rich.console import Console

type FilePath = str | Path

console = Console()


def write_output(df: pd.DataFrame, path: FilePath, fmt: str = "csv") -> Path:
    """Write a DataFrame to the specified format."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    match fmt:
        case "csv":
            df.to_csv(path, index=False)
        case "json":
            df.to_json(path, orient="records", indent=2, date_format="iso")
        case other:
            raise ValueError(f"Unsupported output format: {other}")

    console.print(f"  Wrote {len(df)} rows to {path}")
    return path


def load_yaml_file(path: FilePath) -> dict:
    """Load a YAML mapping, treating an empty file as an empty mapping."""
    with open(path) as f:
        data = yaml.safe_load(f)
    match data:
        case None:
            return {}
        case dict():
            return data
        case other:
            raise ValueError(f"{path} must contain a mapping, got {type(other).__name__}")


def load_toml_config(path: FilePath) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)
