"""Line-ending and trailing-newline canonicalization for practice code."""

_BOM = "\ufeff"


def normalize(code: str, ensure_trailing_newline: bool = True) -> str:
    """Canonicalize line endings and the trailing newline.

    Typed text must stay faithful, so nothing inside the code changes:
    indentation, tabs and trailing spaces on a line are kept as-is.

    Args:
        code: Raw code text.
        ensure_trailing_newline: End with exactly one newline (True) or none.

    Returns:
        Normalized code.
    """
    if code.startswith(_BOM):
        code = code[1:]
    code = code.replace("\r\n", "\n").replace("\r", "\n")
    code = code.rstrip("\n")
    if ensure_trailing_newline and code:
        code += "\n"
    return code
