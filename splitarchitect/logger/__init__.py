from splitarchitect.logger.formatting import format_partition, format_set, format_split

__all__ = ["format_partition", "format_set", "format_split"]
