import numpy

from . import geometry

def effective_degree(num_control_points, degree):
    """Return the spline degree usable with a given number of control points.

    A B-spline of degree k needs at least k+1 control points, so for short
    control polygons the degree is reduced to num_control_points - 1 (e.g. two
    control points give a straight line)."""
    if num_control_points < 2:
        raise ValueError('At least two control points are required for a spline.')
    if degree < 1:
        raise ValueError('Spline degree must be at least 1.')
    return min(degree, num_control_points - 1)


def clamped_knots(num_control_points, degree):
    """Return a uniform clamped knot vector on the domain [0, 1].

    The vector has num_control_points + degree + 1 entries: the first and last
    degree+1 knots are repeated so that the curve passes through the first and
    last control points, and the interior knots are evenly spaced."""
    if num_control_points <= degree:
        raise ValueError('m>k must hold')
    interior = numpy.linspace(0, 1, num_control_points - degree + 1)
    return numpy.concatenate([numpy.zeros(degree), interior, numpy.ones(degree)])


def spline_tck(points, degree=3):
    """Return the clamped uniform B-spline defined by a control polygon.

    Parameters:
    points: array of n control points x,y; shape=(n,2)
    degree: the desired degree of the spline. If there are too few control
        points for this degree, the highest possible degree is used instead.

    Returns a spline tuple (t,c,k) consisting of:
        t: the knots of the spline curve
        c: the x and y b-spline coefficients (here, the control points themselves)
        k: the degree of the spline.

    The (t,c,k) convention matches scipy.interpolate, so that e.g.
    scipy.interpolate.BSpline(*spline_tck(points)) describes the same curve."""
    points = numpy.array(points, dtype=float)
    if points.ndim != 2:
        raise ValueError('Control points must be an array of shape (n, d).')
    k = effective_degree(len(points), degree)
    t = clamped_knots(len(points), k)
    return t, points, k


def knot_spans(t, k, positions):
    """Return, for each parametric position u, the index i of the knot span
    such that t[i] <= u < t[i+1].

    Positions at (or past) the end of the domain are clamped into the last
    non-empty span, as are positions before its start."""
    num_coefficients = len(t) - k - 1
    spans = numpy.searchsorted(t, positions, side='right') - 1
    return spans.clip(k, num_coefficients - 1)


def de_boor(tck, positions):
    """Evaluate spline (t,c,k) at the given parametric positions with de Boor's
    algorithm.

    Works for parametric splines (c of shape (n,d)) and non-parametric ones
    (c of shape (n,)). Where repeated knots make a blending interval empty, the
    blending weight is taken to be zero.

    Returns an array of shape (len(positions), d), or (len(positions),) for a
    non-parametric spline."""
    t, c, k = tck
    t = numpy.asarray(t, dtype=float)
    c = numpy.asarray(c, dtype=float)
    u = numpy.asarray(positions, dtype=float)
    spans = knot_spans(t, k, u)
    # working buffer: the k+1 coefficients influencing each position's span
    d = c[spans[:, numpy.newaxis] - k + numpy.arange(k+1)]
    weight_shape = u.shape + (1,) * (c.ndim - 1)
    for r in range(1, k+1):
        for j in range(k, r-1, -1):
            left = t[spans + j - k]
            right = t[spans + j - r + 1]
            interval = right - left
            empty = interval == 0
            alpha = numpy.where(empty, 0, u - left) / numpy.where(empty, 1, interval)
            alpha = alpha.reshape(weight_shape)
            d[:, j] = (1 - alpha) * d[:, j-1] + alpha * d[:, j]
    return d[:, k]


def spline_interpolate(tck, num_points):
    """Return num_points positions equally spaced in parameter along the given
    spline, from the start to the end of its valid domain.

    Note that equal spacing in parameter is not equal spacing in arc length."""
    t, c, k = tck
    output_positions = numpy.linspace(t[k], t[-k-1], num_points)
    return de_boor(tck, output_positions)


def greville_abscissae(tck):
    """Return the parametric position most associated with each coefficient of
    spline (t,c,k): the mean of the k knots following its first knot.

    For a clamped spline the first and last abscissae are the ends of the
    domain, and the abscissae are non-decreasing."""
    t, c, k = tck
    t = numpy.asarray(t, dtype=float)
    if k == 0:
        return t[:len(c)]
    return numpy.array([t[i+1:i+k+1].mean() for i in range(len(c))])


def linear_interpolate(points, num_points):
    """Resample a piecewise linear curve to contain a given number of
    equally-spaced points, using linear interpolation.

    Parameters:
    points: array of n points x,y; shape=(n,2), n >= 2
    num_points: number of output points in array.

    Returns: points_out, segments, fractions
        points_out: the resampled array, of shape (num_points,2)
        segments: for each output point, the index of the input segment it
            lies on (segment i runs from points[i] to points[i+1])
        fractions: for each output point, its fractional position along that
            segment, in [0, 1].

    For a curve of zero length the input points are treated as evenly spaced."""
    points = numpy.asarray(points, dtype=float)
    if len(points) < 2:
        raise ValueError('At least two points are required for linear interpolation.')
    distances = geometry.cumulative_distances(points, unit=True)
    sample_positions = numpy.linspace(0, 1, num_points)
    segments = numpy.searchsorted(distances, sample_positions, side='right') - 1
    segments = segments.clip(0, len(points) - 2)
    starts = distances[segments]
    lengths = distances[segments+1] - starts
    # only the clamped final position can land on an empty segment
    empty = lengths == 0
    fractions = numpy.where(empty, 1, sample_positions - starts) / numpy.where(empty, 1, lengths)
    fractions = fractions.clip(0, 1)
    f = fractions[:, numpy.newaxis]
    points_out = (1 - f) * points[segments] + f * points[segments+1]
    return points_out, segments, fractions
