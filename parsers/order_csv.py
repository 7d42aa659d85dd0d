"""
CSV table reader for decoded order exports.

Splits decoded text into a header row and data rows. Columns are kept
positional (header=None) so duplicate header names survive and the mapper
can address columns by index.
"""

import csv
import warnings
from dataclasses import dataclass, field
from io import StringIO

import pandas as pd
import structlog

from exceptions import OrderCSVFormatError
from utils.text_utils import normalize_header, clean_cell

logger = structlog.get_logger(__name__)


@dataclass
class OrderCSVTable:
    """Header row and data rows of one export."""
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.headers


def read_order_csv(text: str) -> OrderCSVTable:
    """
    Parse decoded CSV text.

    Rows longer than the header are cut to the header width and shorter
    rows are padded with "", so every data row yields exactly one list of
    cells.

    Args:
        text: Decoded file content

    Returns:
        OrderCSVTable (empty when the text holds no rows)

    Raises:
        OrderCSVFormatError: If the tokenizer rejects the text
    """
    try:
        with warnings.catch_warnings():
            # Emitted when a wide row is cut to the header width
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                StringIO(text),
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
                on_bad_lines=_keep_wide_row,
            )
    except pd.errors.EmptyDataError:
        logger.warning("order_csv_empty")
        return OrderCSVTable()
    except (pd.errors.ParserError, csv.Error) as e:
        logger.error("order_csv_parse_failed", error=str(e))
        raise OrderCSVFormatError(str(e)) from e

    df = df.fillna("")
    if df.empty:
        return OrderCSVTable()

    headers = [normalize_header(value) for value in df.iloc[0].tolist()]
    rows = [
        [clean_cell(value) for value in record]
        for record in df.iloc[1:].itertuples(index=False, name=None)
    ]

    table = OrderCSVTable(headers=headers, rows=rows)

    logger.debug(
        "order_csv_read",
        columns=len(headers),
        rows=table.row_count,
    )

    return table


def _keep_wide_row(bad_line: list[str]) -> list[str]:
    # pandas drops the cells beyond the header width
    return bad_line
