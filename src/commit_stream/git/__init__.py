"""Git module for commit_stream."""
from commit_stream.git.line_source import Line, LineSource
from commit_stream.git.log_parser import CommitAssembler, iter_commits, parse_commits
from commit_stream.git.output import truncate_to_byte_limit
from commit_stream.git.runner import GitRunner

__all__ = [
    "CommitAssembler",
    "GitRunner",
    "Line",
    "LineSource",
    "iter_commits",
    "parse_commits",
    "truncate_to_byte_limit",
]
