"""
Table data settings

Values come from keyword arguments, or from TABLEDATA_* environment
variables (a .env file is honoured) via ``TableDataSettings.from_env()``.
"""
import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from parsers.delimited import DEFAULT_COMMENT_PREFIX, DEFAULT_DELIMITER, DEFAULT_QUOTE_CHAR

ENV_PREFIX = 'TABLEDATA_'
DEFAULT_MAX_RELATIONSHIP_DEPTH = 5

ENV_FIELDS = (
    'delimiter',
    'quote_char',
    'comment_prefix',
    'encoding',
    'max_relationship_depth',
    'data_dir',
)


class TableDataSettings(BaseModel):
    """How tables are read and how deep relationships are followed."""
    delimiter: str = Field(DEFAULT_DELIMITER, min_length=1, max_length=1, description="Field separator")
    quote_char: str = Field(DEFAULT_QUOTE_CHAR, min_length=1, max_length=1, description="Quote character")
    comment_prefix: str = Field(DEFAULT_COMMENT_PREFIX, description="Lines starting with this are skipped")
    encoding: str = Field('utf-8', description="Encoding used by DirectorySource")
    max_relationship_depth: int = Field(DEFAULT_MAX_RELATIONSHIP_DEPTH, ge=1, description="Maximum nested relationship depth")
    data_dir: Optional[Path] = Field(None, description="Directory holding the table files")

    @model_validator(mode='after')
    def _check_distinct_quote(self) -> 'TableDataSettings':
        if self.delimiter == self.quote_char:
            raise ValueError("delimiter and quote_char must differ")
        return self

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None, **overrides) -> 'TableDataSettings':
        """
        Build settings from the environment.

        Args:
            env_file: .env file to load; python-dotenv's lookup is used if None
            **overrides: Values that take precedence over the environment
        """
        load_dotenv(env_file)

        values = {}
        for name in ENV_FIELDS:
            env_value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if env_value is not None:
                values[name] = env_value
        values.update(overrides)
        return cls(**values)
