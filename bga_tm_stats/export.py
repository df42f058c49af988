"""
Tabular export of parsed replay rows using pandas
"""
import logging
import os
from dataclasses import asdict, fields, is_dataclass
from typing import List, Dict, Any

import pandas as pd

from .records import ParsedGame

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ('csv', 'json')


def records_to_frame(rows: List[Any]) -> pd.DataFrame:
    """Build a DataFrame with one column per record field"""
    if not rows:
        return pd.DataFrame()

    columns = [f.name for f in fields(rows[0])] if is_dataclass(rows[0]) else None
    df = pd.DataFrame([asdict(row) for row in rows], columns=columns)
    # Nullable integer columns instead of floats for missing generations
    return df.convert_dtypes()


def export_parsed_game(parsed: ParsedGame, output_dir: str, fmt: str = 'csv', delimiter: str = ',') -> Dict[str, str]:
    """
    Write one file per non-empty entity type of a parsed game

    Args:
        parsed: Rows reconstructed from one replay log
        output_dir: Directory to write into, created if missing
        fmt: 'csv' or 'json'
        delimiter: Field separator for CSV output

    Returns:
        dict: Entity name -> written file path
    """
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")

    os.makedirs(output_dir, exist_ok=True)
    written = {}

    for entity, rows in parsed.row_sets().items():
        if not rows:
            logger.debug(f"Table {parsed.table_id}: no {entity} rows, skipping")
            continue

        df = records_to_frame(rows)
        file_path = os.path.join(output_dir, f"{parsed.table_id}_{entity}.{fmt}")
        if fmt == 'csv':
            df.to_csv(file_path, index=False, sep=delimiter)
        else:
            df.to_json(file_path, orient='records', indent=2)

        written[entity] = file_path
        logger.debug(f"Wrote {len(df)} {entity} rows to {file_path}")

    logger.info(f"Exported {len(written)} entity files for table {parsed.table_id} to {output_dir}")
    return written


def count_rows(parsed: ParsedGame) -> int:
    return sum(len(rows) for rows in parsed.row_sets().values())
