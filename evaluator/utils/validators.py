"""Data validation utilities using pandera."""

import pandera as pa
import pandas as pd
from pandera import DataFrameSchema

from evaluator.utils.types import ValidationOutcome


def validate_dataframe(df: pd.DataFrame, schema: DataFrameSchema) -> ValidationOutcome:
    """Validate a DataFrame against a pandera schema."""
    try:
        schema.validate(df, lazy=True)
        return {"valid": True, "status": "ok", "errors": []}
    except pa.errors.SchemaErrors as e:
        errors = []
        for _, row in e.failure_cases.iterrows():
            match row.to_dict():
                case {"column": col, "check": check, "failure_case": val}:
                    errors.append(f"Column '{col}' failed check '{check}': {val}")
                case failure:
                    errors.append(f"Validation failure: {failure}")
        return {"valid": False, "status": "error", "errors": errors}


def ensure_valid(df: pd.DataFrame, schema: DataFrameSchema, label: str) -> pd.DataFrame:
    """Validate and raise ValueError listing the first failures."""
    match validate_dataframe(df, schema):
        case {"valid": True}:
            return df
        case {"valid": False, "errors": errs}:
            raise ValueError(f"{label} failed validation: " + "; ".join(errs[:5]))
