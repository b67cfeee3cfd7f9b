
def clamp(value, low, high):
    return max(low, min(high, value))


def bounds_center(bounds):
    left, top, right, bottom = bounds
    return (left + right) / 2.0, (top + bottom) / 2.0


def padded_center(bounds, padding=2.0):
    """Center of ``bounds`` kept at least ``padding`` px away from each edge."""
    left, top, right, bottom = bounds
    x, y = bounds_center(bounds)
    if right - left > 2 * padding:
        x = clamp(x, left + padding, right - padding)
    if bottom - top > 2 * padding:
        y = clamp(y, top + padding, bottom - padding)
    return x, y


def bounds_close(first, second, tolerance=5.0):
    return all(abs(float(a) - float(b)) <= tolerance for a, b in zip(first, second))
