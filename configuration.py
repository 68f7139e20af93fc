import os
from typing import Literal

from pydantic import BaseModel, Field


def default_parallelism() -> int:
    return os.cpu_count() or 1


class FormatterConfig(BaseModel):
    model_config = {'frozen': True}

    block_size: int = Field(1, ge=0, description="Minimum line span from a block's first statement to an exit statement before a blank line is inserted.")
    write: bool = Field(False, description="Overwrite modified files in place.")
    dry_run: bool = Field(False, description="Only report the files that would be modified.")
    verbose: bool = Field(False, description="Report unchanged files, skipped directories and every insertion.")
    parallelism: int = Field(default_factory=default_parallelism, gt=0, description="Maximum number of files formatted concurrently.")
    block_size_policy: Literal["lines", "statements"] = Field(
        "lines", description="How a block is judged too short: line distance, or count of sibling statements."
    )
