"""Evaluator configuration and environment setup."""

from dataclasses import dataclass, replace
from pathlib import Path

from evaluator.utils.io import load_toml_config

type ConfigDict = dict[str, str | int | float | bool | list[str]]


@dataclass(frozen=True)
class ScoringConfig:
    score_min: int
    score_max: int
    low_variance_max: float
    medium_variance_max: float


@dataclass(frozen=True)
class EvaluatorConfig:
    scoring: ScoringConfig
    log_level: str
    date_format: str


DEFAULT_SCORING = ScoringConfig(
    score_min=1,
    score_max=5,
    low_variance_max=0.5,
    medium_variance_max=2.0,
)


def load_evaluator_config(env: str = "production") -> EvaluatorConfig:
    match env:
        case "production":
            log_level = "WARNING"
        case "staging":
            log_level = "INFO"
        case "development":
            log_level = "DEBUG"
        case other:
            raise ValueError(f"Unknown environment: {other}")

    return EvaluatorConfig(
        scoring=DEFAULT_SCORING,
        log_level=log_level,
        date_format="%Y-%m-%d",
    )


def apply_overrides(config: EvaluatorConfig, overrides: ConfigDict) -> EvaluatorConfig:
    """Fold ``[tool.evaluator]`` style overrides into a loaded config."""
    scoring = config.scoring
    for key, value in overrides.items():
        match key:
            case "score_min" | "score_max":
                scoring = replace(scoring, **{key: int(value)})
            case "low_variance_max" | "medium_variance_max":
                scoring = replace(scoring, **{key: float(value)})
            case "log_level":
                config = replace(config, log_level=str(value).upper())
            case "date_format":
                config = replace(config, date_format=str(value))
            case _:
                pass

    if scoring.score_min >= scoring.score_max:
        raise ValueError(f"score_min must be below score_max: {scoring.score_min} >= {scoring.score_max}")
    if scoring.low_variance_max > scoring.medium_variance_max:
        raise ValueError("low_variance_max cannot exceed medium_variance_max")
    return replace(config, scoring=scoring)


def get_env_config(pyproject: Path | None = None) -> ConfigDict:
    """Read evaluator config from pyproject.toml."""
    pyproject = pyproject or Path(__file__).parent.parent / "pyproject.toml"
    if not pyproject.exists():
        return {}
    data = load_toml_config(pyproject)
    return data.get("tool", {}).get("evaluator", {})
