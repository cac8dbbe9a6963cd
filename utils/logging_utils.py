def mask_value(value: str, keep_prefix: int = 6, keep_suffix: int = 4) -> str:
    """Shorten processor handles and client secrets before they reach a log line.

    ``pi_3NabcdEFGH1234`` becomes ``pi_3Na...1234``; short values are hidden
    entirely.
    """
    if not isinstance(value, str):
        return value
    if len(value) <= keep_prefix + keep_suffix:
        return "***"
    return value[:keep_prefix] + "..." + value[-keep_suffix:]
