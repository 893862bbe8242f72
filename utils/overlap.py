# ==================== UTILS/OVERLAP.PY ====================
"""Half-open interval checks shared by parking and ride allocation.

Windows are ``[start, end)``: a window ending at 10:00 does not overlap one
starting at 10:00.
"""


def overlaps(start, end, other_start, other_end):
    return start < other_end and other_start < end


def any_overlap(start, end, windows):
    """True if ``[start, end)`` overlaps any ``(start, end)`` pair in ``windows``"""
    return any(overlaps(start, end, other_start, other_end) for other_start, other_end in windows)


def filter_overlapping(queryset, start, end, start_field='start_time', end_field='end_time'):
    """Same predicate as ``overlaps`` pushed down to the database"""
    return queryset.filter(**{
        f'{start_field}__lt': end,
        f'{end_field}__gt': start,
    })
