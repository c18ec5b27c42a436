import numpy

def cumulative_distances(points, unit=True):
    """Return cumulative distances along a polyline.

    Parameters:
    points: array of shape (n,m) consisting of n points in m dimensions
    unit: if True, return distances divided by total length of the curve,
          if False, return actual arc lengths.

    A polyline of zero total length (e.g. a single point, or repeated copies of
    one point) has no meaningful unit distances: in that case the unit distances
    are spaced evenly by point index instead."""
    points = numpy.asarray(points, dtype=float)
    distances = numpy.concatenate([[0], numpy.add.accumulate(numpy.sqrt(((points[:-1] - points[1:])**2).sum(axis=1)))])
    if unit:
        if distances[-1] > 0:
            distances /= distances[-1]
        else:
            distances = numpy.linspace(0, 1, len(points))
    return distances

def arc_length(points):
    """Return the total length of a polyline of shape (n,m)."""
    return cumulative_distances(points, unit=False)[-1]
