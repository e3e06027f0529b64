"""commit_stream - Bounded streaming parser for git log and diff output."""
from commit_stream.csv_table import parse_csv, parse_csv_file
from commit_stream.git.log_parser import iter_commits, parse_commits
from commit_stream.git.output import truncate_to_byte_limit
from commit_stream.models import Commit, CsvFile, CsvTable, File

__version__ = "0.1.0"

__all__ = [
    "Commit",
    "CsvFile",
    "CsvTable",
    "File",
    "iter_commits",
    "parse_commits",
    "parse_csv",
    "parse_csv_file",
    "truncate_to_byte_limit",
]
