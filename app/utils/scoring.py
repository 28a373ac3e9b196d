def percentage(part: int, whole: int) -> int:
    """
    Integer percentage of ``part`` over ``whole`` rounded half up.

    Returns 0 when ``whole`` is 0. Integer arithmetic keeps 12.5 -> 13 exact,
    which the built-in ``round`` would send to 12.
    """
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (whole * 2)
