'''
Curve
-----
Functions for computations over plane curves, approximated as series of points (polylines) or parametric splines.
 - curve.geometry: basic algorithms for polyline curves.
 - curve.interpolate: clamped uniform B-splines evaluated with de Boor's algorithm, and linear resampling of polylines.
 '''
