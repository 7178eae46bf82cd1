"""Shared utilities for the evaluation core."""

from evaluator.utils.io import write_output, load_yaml_file
from evaluator.utils.validators import validate_dataframe
from evaluator.utils.types import Clock, utcnow
