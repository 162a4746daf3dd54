"""Read access to ili2gpkg metadata tables in a GeoPackage.

ili2gpkg records the imported models in T_ILI2DB_MODEL.modelName and one row
per imported basket in T_ILI2DB_BASKET.topic. A modelName value may hold
several models, with imported models grouped in braces, e.g.
"ModelA{ ModelB ModelC}"; it is read as a flat list of tokens.
"""

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from sqlalchemy import column, create_engine, select, table
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)

MODEL_TABLE = "T_ILI2DB_MODEL"
MODEL_NAME_COLUMN = "modelName"
BASKET_TABLE = "T_ILI2DB_BASKET"
BASKET_TOPIC_COLUMN = "topic"

_MODEL_NAME_SEPARATORS = re.compile(r"[\s{}]+")


def read_column(db_file_path: str | Path, table_name: str, column_name: str) -> list[str]:
    """Read all values of one column of a GeoPackage table.

    A NullPool engine is used so no connection outlives the call and the file
    can be deleted right after.

    Args:
        db_file_path: Path to the GeoPackage
        table_name: Table to read
        column_name: Column to read

    Returns:
        Column values as strings, NULLs skipped

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If the file, table or column cannot be read
    """
    engine = create_engine(f"sqlite:///{db_file_path}", poolclass=NullPool)
    try:
        stmt = select(column(column_name)).select_from(table(table_name))
        with engine.connect() as conn:
            return [str(value) for value in conn.execute(stmt).scalars() if value is not None]
    finally:
        engine.dispose()


def read_model_names(db_file_path: str | Path) -> list[str]:
    return read_column(db_file_path, MODEL_TABLE, MODEL_NAME_COLUMN)


def read_basket_topics(db_file_path: str | Path) -> list[str]:
    return read_column(db_file_path, BASKET_TABLE, BASKET_TOPIC_COLUMN)


def split_model_names(models: Iterable[str]) -> list[str]:
    """Flatten modelName values into distinct model tokens, in first-seen order."""
    tokens: dict[str, None] = {}
    for value in models:
        for token in _MODEL_NAME_SEPARATORS.split(value):
            if token:
                tokens.setdefault(token)
    return list(tokens)


def basket_topics_not_in_models(topics: Iterable[str], models: Iterable[str]) -> list[str]:
    """Models of imported baskets that are not among the declared models.

    Args:
        topics: Qualified basket topics, e.g. "ModelA.Topic1"
        models: modelName values as stored by ili2gpkg

    Returns:
        Distinct topic model names (text before the first '.') missing from
        the flattened model names, in first-seen order

    Example:
        >>> basket_topics_not_in_models(
        ...     ["ModelA.Topic1", "ModelE.Topic2", "ModelZ.Topic3"],
        ...     ["ModelA{ ModelB ModelC ModelD}", "ModelE"],
        ... )
        ['ModelZ']
    """
    known_models = set(split_model_names(models))
    basket_models = dict.fromkeys(topic.split(".")[0] for topic in topics)
    return [model for model in basket_models if model not in known_models]
