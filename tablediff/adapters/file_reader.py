"""
Table file reader.
Single responsibility: turn CSV and spreadsheet files into comparison tables.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union
import pandas as pd

from ..utils.logger import get_logger
from ..core.diff_engine import Table


logger = get_logger()


SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".xls")
MAX_FILE_SIZE = 50 * 1024 * 1024
CSV_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")


class FileValidationError(ValueError):
    """Raised when a file cannot be accepted for comparison."""
    pass


def validate_file(file_path: Union[str, Path],
                  max_size: int = MAX_FILE_SIZE) -> Path:
    """
    Check that a file exists, has a supported type and is not too large.

    Args:
        file_path: Candidate file
        max_size: Size limit in bytes

    Returns:
        The path as a Path

    Raises:
        FileValidationError: If the file is rejected
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileValidationError(f"File not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise FileValidationError(
            f"Unsupported file type: {suffix or '(none)'}. "
            f"Expected one of {', '.join(SUPPORTED_SUFFIXES)}"
        )

    size = file_path.stat().st_size
    if size > max_size:
        raise FileValidationError(
            f"File exceeds size limit ({max_size // (1024 * 1024)}MB): {file_path}"
        )

    return file_path


def _cell_text(value: Any) -> str:
    """Render one spreadsheet cell as trimmed text."""
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    if value is pd.NaT:
        return ""
    if isinstance(value, (datetime, pd.Timestamp, date)):
        return value.strftime("%Y-%m-%d")
    return str(value).strip()


class TableFileReader:
    """
    Reads CSV and Excel files into Table values, all cells as text.
    """

    def __init__(self, max_size: int = MAX_FILE_SIZE):
        """
        Initialize reader.

        Args:
            max_size: Largest accepted file in bytes
        """
        self.max_size = max_size

    def read_csv(self, file_path: Path) -> pd.DataFrame:
        """
        Read CSV file trying common encodings in turn.

        latin-1 comes last and decodes any byte sequence, so one of the
        encodings always succeeds.

        Args:
            file_path: Path to CSV file

        Returns:
            DataFrame of strings
        """
        logger.info("file_reader.csv.reading", file=str(file_path))

        for encoding in CSV_ENCODINGS:
            try:
                df = pd.read_csv(file_path, encoding=encoding, dtype=str,
                                 keep_default_na=False, skip_blank_lines=True)
                break
            except UnicodeDecodeError:
                logger.debug("file_reader.csv.encoding_rejected",
                            file=str(file_path),
                            encoding=encoding)

        logger.info("file_reader.csv.loaded",
                   rows=len(df),
                   columns=len(df.columns),
                   encoding=encoding)
        return df

    def read_excel(self, file_path: Path, sheet_name: Union[int, str] = 0) -> pd.DataFrame:
        """
        Read one worksheet (the first by default).

        Args:
            file_path: Path to Excel file
            sheet_name: Sheet to read

        Returns:
            DataFrame of raw cell values
        """
        logger.info("file_reader.excel.reading",
                   file=str(file_path),
                   sheet=sheet_name)

        df = pd.read_excel(file_path, sheet_name=sheet_name, dtype=object)

        logger.info("file_reader.excel.loaded",
                   rows=len(df),
                   columns=len(df.columns))
        return df

    @staticmethod
    def clean(df: pd.DataFrame) -> pd.DataFrame:
        """Stringify and trim every cell, drop rows with no content."""
        headers = [str(col).replace("\ufeff", "").strip() for col in df.columns]
        df = pd.DataFrame(
            {header: df.iloc[:, i].map(_cell_text) for i, header in enumerate(headers)},
            index=df.index,
            columns=headers
        )
        if len(df.columns):
            df = df[(df != "").any(axis=1)]
        return df.reset_index(drop=True)

    def read(self, file_path: Union[str, Path],
             sheet_name: Optional[Union[int, str]] = None) -> Table:
        """
        Read a supported file into a Table.

        Args:
            file_path: Path to file
            sheet_name: Worksheet for Excel files (first sheet if omitted)

        Returns:
            Table with text cells

        Raises:
            FileValidationError: If the file is rejected
        """
        file_path = validate_file(file_path, self.max_size)

        if file_path.suffix.lower() == ".csv":
            df = self.read_csv(file_path)
        else:
            df = self.read_excel(file_path, 0 if sheet_name is None else sheet_name)

        return Table.from_dataframe(self.clean(df), filename=file_path.name)
