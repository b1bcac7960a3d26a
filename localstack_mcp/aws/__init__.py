"""AWS CLI helpers."""

from .sanitizer import sanitize_aws_cli_command, split_args

__all__ = ["sanitize_aws_cli_command", "split_args"]
