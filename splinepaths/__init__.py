'''
# splinepaths

Python modules for turning grouped 2D control points into densely sampled
paths for drawing: splines, links between points, and bundled edges.

Curve
-----
Functions for computations over plane curves, approximated as series of points (polylines) or parametric splines.
 - curve.geometry: basic algorithms for polyline curves.
 - curve.interpolate: clamped uniform B-splines evaluated with de Boor's algorithm, and linear resampling of polylines.

Paths
-----
 - paths: evaluate tables of grouped control points (ControlPoints) into tables
   of path samples (EvaluatedPath), as B-splines or straight links, carrying
   or blending per-point attributes such as colour, size or alpha along the way.

'''
