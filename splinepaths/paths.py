# This code is licensed under the MIT License (see LICENSE file for details)

import collections
from concurrent import futures
import enum
import functools
import math
import numbers
import warnings

import numpy

from .curve import geometry
from .curve import interpolate

RESERVED_COLUMNS = ('x', 'y', 'group', 'index', 'interpolated')

class InvalidArgumentError(ValueError):
    pass

class MalformedGroupWarning(UserWarning):
    pass

DroppedGroup = collections.namedtuple('DroppedGroup', ('group', 'reason'))

class Mode(enum.Enum):
    """How control points are turned into a path, and how their attributes
    are carried onto the path samples.

    CLAMPED: clamped B-spline through the control polygon. Each control point's
        attributes are placed on the single sample nearest to it; all other
        samples are left unset and flagged in the 'interpolated' column, for
        the renderer to resolve.
    CONSTANT_STYLE: clamped B-spline, with every sample taking the attributes
        of the group's first control point. No per-sample attribute work; the
        positions are evaluated exactly as for CLAMPED, so the saving is in
        attribute handling only.
    LINEAR_PER_SEGMENT: straight segments between consecutive control points.
        Numeric attributes are blended linearly; categorical attributes are
        held from each segment's start, with the segment's end value in a
        parallel '<name>_end' column.
    """
    CLAMPED = 'clamped'
    CONSTANT_STYLE = 'constant_style'
    LINEAR_PER_SEGMENT = 'linear_per_segment'


class Categorical:
    """Categorical attribute column: integer codes into an ordered tuple of
    categories. A code of -1 marks an unset value.

    The categories are kept even when no entry uses them, so paths made from a
    subset of the control points still know the full category domain.
    """
    def __init__(self, values, categories=None):
        """Parameters:
            values: sequence of category values; None or NaN marks an unset
                value.
            categories: ordered categories. If None, the sorted unique values
                are used, or the unique values in order of first appearance
                if they cannot be sorted (e.g. a mix of strings and numbers).
        """
        values = list(values)
        if categories is None:
            present = list(collections.OrderedDict.fromkeys(value for value in values if not _is_missing(value)))
            try:
                categories = sorted(present)
            except TypeError:
                categories = present
        self.categories = tuple(categories)
        lookup = {category: i for i, category in enumerate(self.categories)}
        codes = []
        for value in values:
            if _is_missing(value):
                codes.append(-1)
            elif value in lookup:
                codes.append(lookup[value])
            else:
                raise ValueError('Value {!r} is not one of the categories {}.'.format(value, self.categories))
        self.codes = numpy.array(codes, dtype=int)

    @classmethod
    def from_codes(cls, codes, categories):
        categorical = cls([], categories)
        codes = numpy.asarray(codes, dtype=int)
        if codes.size and (codes.min() < -1 or codes.max() >= len(categorical.categories)):
            raise ValueError('Categorical codes out of range.')
        categorical.codes = codes
        return categorical

    def __len__(self):
        return len(self.codes)

    def __eq__(self, other):
        if not isinstance(other, Categorical):
            return NotImplemented
        return self.categories == other.categories and numpy.array_equal(self.codes, other.codes)

    def __repr__(self):
        return 'Categorical({!r}, categories={!r})'.format(self.values(), self.categories)

    def take(self, indices):
        """Return a new Categorical with the entries at the given indices.
        An index of -1 produces an unset entry."""
        indices = numpy.asarray(indices, dtype=int)
        codes = numpy.full(len(indices), -1, dtype=int)
        valid = indices >= 0
        codes[valid] = self.codes[indices[valid]]
        return Categorical.from_codes(codes, self.categories)

    def isnull(self):
        return self.codes < 0

    def values(self):
        """Return the entries as a list, with None for unset entries."""
        return [None if code < 0 else self.categories[code] for code in self.codes]


def _is_missing(value):
    return value is None or (isinstance(value, float) and math.isnan(value))

def _is_number(value):
    return isinstance(value, numbers.Real) and not isinstance(value, (bool, numpy.bool_))

def _as_attribute(values):
    if isinstance(values, Categorical):
        return values
    array = numpy.asarray(values)
    if array.ndim != 1:
        raise ValueError('Attribute columns must be one-dimensional.')
    if array.dtype.kind in 'biuf':
        return array.astype(float)
    values = array.tolist()
    # numbers with missing entries (None) arrive as an object array
    if array.dtype.kind == 'O' and all(_is_number(value) for value in values if not _is_missing(value)):
        return numpy.array([numpy.nan if _is_missing(value) else value for value in values], dtype=float)
    return Categorical(values)


class ControlPoints:
    """Table of 2D control points, grouped into curves.

    Columns:
        x, y: float arrays of control point coordinates.
        group: list of group identifiers (any hashable values). Rows with the
            same identifier make up one curve, in the order they are given.
        attributes: ordered dict mapping attribute names to numeric float
            arrays or Categorical columns, one entry per control point.
    """
    def __init__(self, x, y, group=None, attributes=None):
        """Parameters:
            x, y: sequences of coordinates.
            group: sequence of group identifiers, or None to place all points in
                a single group.
            attributes: mapping from attribute names to columns. Boolean, integer
                and float columns are numeric, as are columns of numbers with
                None or NaN for missing entries (which become NaN); a
                Categorical is used as given; anything else becomes a
                Categorical, with None or NaN as unset entries.
        """
        self.x = numpy.array(x, dtype=float)
        self.y = numpy.array(y, dtype=float)
        if self.x.ndim != 1 or self.x.shape != self.y.shape:
            raise ValueError('x and y must be one-dimensional and of equal length.')
        num_rows = len(self.x)
        if group is None:
            group = [0] * num_rows
        self.group = list(group)
        if len(self.group) != num_rows:
            raise ValueError('group must have one entry per control point.')
        self.attributes = collections.OrderedDict()
        if attributes is not None:
            for name, values in attributes.items():
                if name in RESERVED_COLUMNS:
                    raise ValueError('"{}" is a reserved column name.'.format(name))
                column = _as_attribute(values)
                if len(column) != num_rows:
                    raise ValueError('Attribute "{}" must have one entry per control point.'.format(name))
                self.attributes[name] = column

    @classmethod
    def from_columns(cls, columns):
        """Construct from any mapping of column names to sequences (a dict of
        lists or arrays, a pandas DataFrame, &c.). The 'x' and 'y' columns are
        required; 'group' is optional; all other columns become attributes."""
        columns = collections.OrderedDict((name, columns[name]) for name in columns)
        if 'x' not in columns or 'y' not in columns:
            raise ValueError('Columns "x" and "y" are required.')
        x = columns.pop('x')
        y = columns.pop('y')
        group = columns.pop('group', None)
        return cls(x, y, group, columns)

    def __len__(self):
        return len(self.x)

    def __repr__(self):
        return 'ControlPoints({} points, attributes={})'.format(len(self), list(self.attributes))

    def groups(self):
        """Iterate over (group, rows) pairs, where rows is an array of the row
        indices of that group's control points. Groups are listed in order of
        first appearance; rows within a group keep their input order."""
        rows = collections.OrderedDict()
        for i, group in enumerate(self.group):
            rows.setdefault(group, []).append(i)
        for group, indices in rows.items():
            yield group, numpy.array(indices, dtype=int)


class EvaluatedPath:
    """Densely sampled paths, num_points rows per evaluated group.

    Columns:
        x, y: float arrays of sample positions.
        index: progress of each sample along its path, from 0 to 1 in equal
            steps. This is a parametric index, NOT a fraction of arc length; see
            arc_length_index() for the latter.
        group: list of group identifiers, one per sample.
        interpolated: for Mode.CLAMPED, a boolean array which is False exactly
            at the samples that carry a control point's attributes. None for
            other modes.
        attributes: ordered dict of attribute columns (float arrays, with NaN
            for unset values, or Categorical columns).
        dropped: list of DroppedGroup(group, reason) records for groups that
            could not be evaluated.
    """
    def __init__(self, x, y, index, group, num_points, attributes, interpolated=None, dropped=()):
        self.x = x
        self.y = y
        self.index = index
        self.group = group
        self.num_points = num_points
        self.attributes = attributes
        self.interpolated = interpolated
        self.dropped = list(dropped)

    def __len__(self):
        return len(self.x)

    def __repr__(self):
        return 'EvaluatedPath({} paths of {} points, {} dropped)'.format(len(self) // self.num_points, self.num_points, len(self.dropped))

    def points(self):
        """Return the sample positions as an array of shape (len(self), 2)."""
        return numpy.column_stack([self.x, self.y])

    def groups(self):
        """Iterate over (group, slice) pairs, one per path, in output order."""
        for start in range(0, len(self), self.num_points):
            yield self.group[start], slice(start, start + self.num_points)

    def arc_length_index(self):
        """Return the progress of each sample along its path as a fraction of
        the path's arc length (as measured along the sampled polyline)."""
        out = numpy.empty(len(self), dtype=float)
        points = self.points()
        for group, rows in self.groups():
            out[rows] = geometry.cumulative_distances(points[rows], unit=True)
        return out

    def columns(self):
        """Return the path as a plain dict of columns for a renderer.
        Categorical attributes are given as lists of values, with None for
        unset entries."""
        columns = collections.OrderedDict([('x', self.x), ('y', self.y),
            ('group', self.group), ('index', self.index)])
        if self.interpolated is not None:
            columns['interpolated'] = self.interpolated
        for name, column in self.attributes.items():
            if isinstance(column, Categorical):
                column = column.values()
            columns[name] = column
        return columns


class _MalformedGroup(Exception):
    pass

_GroupPath = collections.namedtuple('_GroupPath', ('points', 'attributes', 'interpolated'))

def evaluate(points, num_points=100, mode=Mode.CLAMPED, degree=3, num_threads=None):
    """Evaluate each group of control points as a densely sampled path.

    Parameters:
        points: ControlPoints instance, or a mapping of columns accepted by
            ControlPoints.from_columns().
        num_points: number of samples per path; must be at least 2.
        mode: a Mode (or its string value) selecting how positions and
            attributes are computed.
        degree: B-spline degree for the spline modes. Groups with too few
            control points for this degree use the highest degree possible:
            two control points always give a straight line.
        num_threads: if not None, evaluate groups on a pool of this many
            threads. Output order is the same either way.

    Returns: EvaluatedPath with num_points rows for each group, in order of
        first appearance of the groups in the input. A group with a single
        control point yields that point repeated num_points times. Groups with
        non-finite coordinates are left out, recorded in the 'dropped' list and
        reported with a MalformedGroupWarning.

    Raises InvalidArgumentError if num_points, mode, degree or num_threads is
    invalid. Empty input produces an empty EvaluatedPath.

    Example:
        points = ControlPoints(x=[0, 1, 2], y=[0, 2, 0], attributes={'colour': ['a', 'b', 'a']})
        path = evaluate(points, num_points=5)
        path.y # [0, 0.75, 1, 0.75, 0]
    """
    return _evaluate(points, num_points, mode, degree, num_threads)

def _evaluate(points, num_points, mode, degree, num_threads):
    _check_count('num_points', num_points, minimum=2)
    _check_count('degree', degree, minimum=1)
    if num_threads is not None:
        _check_count('num_threads', num_threads, minimum=1)
    try:
        mode = Mode(mode)
    except ValueError:
        raise InvalidArgumentError('Unsupported interpolation mode: {!r}'.format(mode))
    if not isinstance(points, ControlPoints):
        points = ControlPoints.from_columns(points)
    layout = _attribute_layout(points, mode)

    groups = list(points.groups())
    evaluate_group = functools.partial(_try_evaluate_group, points, num_points=num_points, mode=mode, degree=degree)
    if num_threads is None or len(groups) < 2:
        results = [evaluate_group(rows) for group, rows in groups]
    else:
        with futures.ThreadPoolExecutor(num_threads) as threadpool:
            results = list(threadpool.map(evaluate_group, [rows for group, rows in groups]))
    return _assemble(groups, results, layout, num_points, mode)

def bspline_paths(points, num_points=100, degree=3, constant_style=False, num_threads=None):
    """Evaluate clamped B-splines through each group of control points.

    If constant_style is True, every sample takes the attributes of its
    group's first control point (Mode.CONSTANT_STYLE); otherwise attributes
    are carried to the nearest samples and the rest flagged as interpolated
    (Mode.CLAMPED). See evaluate() for the other parameters."""
    mode = Mode.CONSTANT_STYLE if constant_style else Mode.CLAMPED
    return _evaluate(points, num_points, mode, degree, num_threads)

def linear_paths(points, num_points=100, num_threads=None):
    """Evaluate straight segments between consecutive control points of each
    group, blending numeric attributes linearly along the way
    (Mode.LINEAR_PER_SEGMENT). See evaluate() for the parameters."""
    return _evaluate(points, num_points, Mode.LINEAR_PER_SEGMENT, 3, num_threads)

def _check_count(name, value, minimum):
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidArgumentError('{} must be an integer, not {!r}.'.format(name, value))
    if value < minimum:
        raise InvalidArgumentError('{} must be at least {}, not {}.'.format(name, minimum, value))

def _attribute_layout(points, mode):
    """Return (output name, source column) pairs describing the attribute
    columns of the output."""
    layout = []
    for name, column in points.attributes.items():
        layout.append((name, column))
        if mode is Mode.LINEAR_PER_SEGMENT and isinstance(column, Categorical):
            end_name = name + '_end'
            if end_name in points.attributes:
                raise InvalidArgumentError('Attribute "{}" would be overwritten by the end values of "{}".'.format(end_name, name))
            layout.append((end_name, column))
    return layout

def _try_evaluate_group(points, rows, num_points, mode, degree):
    """Return a _GroupPath for the given rows, or the reason (a string) that
    the group could not be evaluated."""
    try:
        return _evaluate_group(points, rows, num_points, mode, degree)
    except _MalformedGroup as e:
        return str(e)

def _evaluate_group(points, rows, num_points, mode, degree):
    control = numpy.column_stack([points.x[rows], points.y[rows]])
    if not numpy.isfinite(control).all():
        raise _MalformedGroup('group has non-finite control point coordinates')
    if mode is Mode.LINEAR_PER_SEGMENT:
        return _linear_group(points, rows, control, num_points)
    if len(control) == 1:
        samples = numpy.repeat(control, num_points, axis=0)
        tck = None
    else:
        tck = interpolate.spline_tck(control, degree)
        samples = interpolate.spline_interpolate(tck, num_points)
    if mode is Mode.CONSTANT_STYLE:
        sources = numpy.full(num_points, rows[0], dtype=int)
        attributes = _take_attributes(points, sources)
        return _GroupPath(samples, attributes, None)
    sources = _carried_sources(rows, tck, num_points)
    attributes = _take_attributes(points, sources)
    return _GroupPath(samples, attributes, sources < 0)

def _carried_sources(rows, tck, num_points):
    """For each sample, the row of the control point whose attributes it
    carries, or -1. Each control point goes to the sample nearest its Greville
    abscissa; when several land on one sample, the earliest wins."""
    if tck is None:
        positions = numpy.zeros(1)
    else:
        positions = interpolate.greville_abscissae(tck)
    samples = numpy.rint(positions * (num_points - 1)).astype(int)
    samples, first = numpy.unique(samples, return_index=True)
    sources = numpy.full(num_points, -1, dtype=int)
    sources[samples] = rows[first]
    return sources

def _take_attributes(points, sources):
    attributes = collections.OrderedDict()
    for name, column in points.attributes.items():
        if isinstance(column, Categorical):
            attributes[name] = column.take(sources)
        else:
            values = numpy.full(len(sources), numpy.nan)
            valid = sources >= 0
            values[valid] = column[sources[valid]]
            attributes[name] = values
    return attributes

def _linear_group(points, rows, control, num_points):
    if len(control) == 1:
        samples = numpy.repeat(control, num_points, axis=0)
        starts = ends = numpy.full(num_points, rows[0], dtype=int)
        fractions = numpy.zeros(num_points)
    else:
        samples, segments, fractions = interpolate.linear_interpolate(control, num_points)
        starts = rows[segments]
        ends = rows[segments+1]
    attributes = collections.OrderedDict()
    for name, column in points.attributes.items():
        if isinstance(column, Categorical):
            attributes[name] = column.take(starts)
            attributes[name + '_end'] = column.take(ends)
        else:
            attributes[name] = _blend(column[starts], column[ends], fractions)
    return _GroupPath(samples, attributes, None)

def _blend(starts, ends, fractions):
    """Linearly blend start and end values. Samples exactly on a control point
    take that point's value unchanged, even if the other end is NaN."""
    values = starts.copy()
    at_end = fractions == 1
    values[at_end] = ends[at_end]
    between = (fractions > 0) & (fractions < 1)
    f = fractions[between]
    values[between] = (1 - f) * starts[between] + f * ends[between]
    return values

def _assemble(groups, results, layout, num_points, mode):
    kept = []
    dropped = []
    for (group, rows), result in zip(groups, results):
        if isinstance(result, _GroupPath):
            kept.append((group, result))
        else:
            # result is the reason the group was malformed
            warnings.warn('Dropping group {!r}: {}'.format(group, result), MalformedGroupWarning, stacklevel=4)
            dropped.append(DroppedGroup(group, result))
    if kept:
        samples = numpy.concatenate([result.points for group, result in kept])
    else:
        samples = numpy.empty((0, 2), dtype=float)
    index = numpy.tile(numpy.linspace(0, 1, num_points), len(kept))
    group_column = [group for group, result in kept for i in range(num_points)]
    attributes = collections.OrderedDict()
    for name, column in layout:
        parts = [result.attributes[name] for group, result in kept]
        if isinstance(column, Categorical):
            codes = numpy.concatenate([part.codes for part in parts] + [numpy.empty(0, dtype=int)])
            attributes[name] = Categorical.from_codes(codes, column.categories)
        else:
            attributes[name] = numpy.concatenate(parts + [numpy.empty(0, dtype=float)])
    if mode is Mode.CLAMPED:
        interpolated = numpy.concatenate([result.interpolated for group, result in kept] + [numpy.empty(0, dtype=bool)])
    else:
        interpolated = None
    return EvaluatedPath(samples[:, 0], samples[:, 1], index, group_column, num_points,
        attributes, interpolated, dropped)
