'''Universal-variable Kepler propagation package
Interval arithmetic kernel

Closed real intervals, axis-aligned bounding boxes, and guaranteed
inclusion functions for the universal-variable G-functions. Used to build
sound bounds on position and velocity over a window of time.'''

import math

from .stumpff import stumpff_G


class Interval:
    """
    A closed real interval [lo, hi] with lo <= hi.

    Interval is immutable; every operation returns a new instance. Endpoints
    passed in either order are sorted on construction. Arithmetic is
    conservative: the result always contains every value the operation can
    produce from members of the operands.
    """
    __slots__ = ('_lo', '_hi')

    # ========== CONSTRUCTION ==========
    def __init__(self, lo, hi):
        lo = float(lo)
        hi = float(hi)
        if math.isnan(lo) or math.isnan(hi):
            raise ValueError(f"Interval endpoints must not be NaN: [{lo}, {hi}]")
        if lo <= hi:
            self._lo, self._hi = lo, hi
        else:
            self._lo, self._hi = hi, lo

    @classmethod
    def point(cls, value):
        """Degenerate interval [value, value]."""
        return cls(value, value)

    @staticmethod
    def _coerce(value):
        if isinstance(value, Interval):
            return value
        return Interval.point(value)

    # ========== PROPERTY ACCESS ==========
    @property
    def lo(self):
        return self._lo

    @property
    def hi(self):
        return self._hi

    def width(self):
        return self._hi - self._lo

    def midpoint(self):
        return (self._lo + self._hi) / 2.0

    def norm(self):
        """Largest absolute value of any member."""
        return max(abs(self._lo), abs(self._hi))

    # ========== SET OPERATIONS ==========
    def contains(self, value):
        return self._lo <= value <= self._hi

    def __contains__(self, value):
        return self.contains(value)

    def include(self, value):
        """Smallest interval containing both self and value."""
        return Interval(min(self._lo, value), max(self._hi, value))

    def intersect(self, other):
        """
        Intersection of two intervals.

        Returns
        -------
        Interval or None
            None when the intervals are disjoint
        """
        new_lo = max(self._lo, other.lo)
        new_hi = min(self._hi, other.hi)
        if new_lo <= new_hi:
            return Interval(new_lo, new_hi)
        return None

    def is_subset_of(self, other):
        return other.lo <= self._lo and self._hi <= other.hi

    def separated_by(self, other, threshold):
        """True if the gap between self and other exceeds threshold."""
        if threshold < 0.0:
            raise ValueError(f"Separation threshold must be non-negative, got {threshold}")
        return (self._hi + threshold < other.lo) or (other.hi + threshold < self._lo)

    def widen(self, value):
        """Grow both ends by |value|."""
        return self + Interval(-abs(value), abs(value))

    # ========== SUBDIVISION ==========
    def bisect(self):
        mid = self.midpoint()
        return Interval(self._lo, mid), Interval(mid, self._hi)

    def split_left(self, mid):
        """[lo, mid]; mid must lie inside the interval."""
        if not self.contains(mid):
            raise ValueError(f"Split point {mid} is outside {self}")
        return Interval(self._lo, mid)

    def split_right(self, mid):
        """[mid, hi]; mid must lie inside the interval."""
        if not self.contains(mid):
            raise ValueError(f"Split point {mid} is outside {self}")
        return Interval(mid, self._hi)

    # ========== MAPPINGS ==========
    def monotone_map(self, f):
        """
        Image of the interval under a function that is monotone on it.

        The function may be increasing or decreasing; the endpoints are
        reordered as needed. Correctness relies on the caller's monotonicity
        guarantee.
        """
        return Interval(f(self._lo), f(self._hi))

    def square(self):
        """Tight enclosure of {x^2 : x in self}."""
        lo_sq = self._lo * self._lo
        hi_sq = self._hi * self._hi
        if self.contains(0.0):
            return Interval(0.0, max(lo_sq, hi_sq))
        return Interval(lo_sq, hi_sq)

    def contains_integer_with_mod_constraint(self, m, a):
        """
        True if the interval contains an integer n with n = a (mod m).

        Parameters
        ----------
        m : int
            Positive modulus
        a : int
            Residue, 0 <= a < m
        """
        if math.isinf(self._lo) or math.isinf(self._hi):
            return True
        lo_int = math.ceil(self._lo)
        next_valid_int = lo_int + (a - lo_int) % m
        return self.contains(next_valid_int)

    # ========== ARITHMETIC ==========
    def __add__(self, other):
        other = self._coerce(other)
        return Interval(self._lo + other.lo, self._hi + other.hi)

    __radd__ = __add__

    def __neg__(self):
        return Interval(-self._hi, -self._lo)

    def __sub__(self, other):
        other = self._coerce(other)
        return Interval(self._lo - other.hi, self._hi - other.lo)

    def __rsub__(self, other):
        return self._coerce(other) - self

    def __mul__(self, other):
        other = self._coerce(other)
        products = (
            self._lo * other.lo,
            self._lo * other.hi,
            self._hi * other.lo,
            self._hi * other.hi,
        )
        return Interval(min(products), max(products))

    __rmul__ = __mul__

    def __truediv__(self, other):
        # Only scalar division, to rule out dividing by an interval containing zero
        if isinstance(other, Interval):
            raise TypeError("Intervals can only be divided by scalars")
        return Interval(self._lo / other, self._hi / other)

    # ========== SPECIAL METHODS ==========
    def __eq__(self, other):
        if not isinstance(other, Interval):
            return NotImplemented
        return self._lo == other.lo and self._hi == other.hi

    def __hash__(self):
        return hash((self._lo, self._hi))

    def __iter__(self):
        yield self._lo
        yield self._hi

    def __repr__(self):
        return f"Interval({self._lo!r}, {self._hi!r})"

    def __str__(self):
        return f"[{self._lo}, {self._hi}]"


class BoundingBox:
    """Axis-aligned box in 3-D, one Interval per world axis."""
    __slots__ = ('_axes',)

    def __init__(self, x, y, z):
        self._axes = (x, y, z)

    @property
    def axes(self):
        return self._axes

    def __getitem__(self, index):
        return self._axes[index]

    def __iter__(self):
        return iter(self._axes)

    def __sub__(self, other):
        return BoundingBox(*(a - b for a, b in zip(self._axes, other.axes)))

    def separated_by(self, other, threshold):
        """True if the boxes are more than threshold apart along some axis."""
        return any(a.separated_by(b, threshold) for a, b in zip(self._axes, other.axes))

    def squared_norm(self):
        """Enclosure of |p|^2 over all points p in the box."""
        x, y, z = self._axes
        return x.square() + y.square() + z.square()

    def dot(self, other):
        """Enclosure of p . q for p in self and q in other."""
        x, y, z = (a * b for a, b in zip(self._axes, other.axes))
        return x + y + z

    def __repr__(self):
        return "BoundingBox({}, {}, {})".format(*(repr(a) for a in self._axes))


# ========== G-FUNCTION INCLUSIONS ==========
# For beta > 0 the G-functions oscillate in s, so the image of an s-interval is
# the image of its endpoints plus any extrema crossed in between. For beta <= 0
# the only possible extremum sits at s = 0.

def g0_inclusion(beta, s_interval):
    """Enclosure of G0(beta, s) = cos(sqrt(beta) s) over s_interval."""
    output = s_interval.monotone_map(lambda s: stumpff_G(beta, s)[0])

    if beta > 0.0:
        # extrema at s sqrt(beta) = n pi: maxima for even n, minima for odd n
        test_interval = s_interval.monotone_map(lambda s: s * math.sqrt(beta) / math.pi)
        if test_interval.contains_integer_with_mod_constraint(2, 0):
            output = output.include(1.0)
        if test_interval.contains_integer_with_mod_constraint(2, 1):
            output = output.include(-1.0)
    elif s_interval.contains(0.0):
        output = output.include(1.0)

    return output


def g1_inclusion(beta, s_interval):
    """Enclosure of G1(beta, s) = sin(sqrt(beta) s) / sqrt(beta) over s_interval."""
    output = s_interval.monotone_map(lambda s: stumpff_G(beta, s)[1])

    if beta > 0.0:
        # extrema at s sqrt(beta) = (2n +/- 1/2) pi, i.e. integers 4n +/- 1 after scaling
        test_interval = s_interval.monotone_map(lambda s: s * math.sqrt(beta) / (math.pi / 2.0))
        if test_interval.contains_integer_with_mod_constraint(4, 3):
            output = output.include(-1.0 / math.sqrt(beta))
        if test_interval.contains_integer_with_mod_constraint(4, 1):
            output = output.include(1.0 / math.sqrt(beta))

    return output


def g2_inclusion(beta, s_interval):
    """Enclosure of G2(beta, s) = (1 - cos(sqrt(beta) s)) / beta over s_interval."""
    output = s_interval.monotone_map(lambda s: stumpff_G(beta, s)[2])

    if beta > 0.0:
        # minima at even multiples of pi, maxima at odd multiples
        test_interval = s_interval.monotone_map(lambda s: s * math.sqrt(beta) / math.pi)
        if test_interval.contains_integer_with_mod_constraint(2, 0):
            output = output.include(0.0)
        if test_interval.contains_integer_with_mod_constraint(2, 1):
            output = output.include(2.0 / beta)
    elif s_interval.contains(0.0):
        output = output.include(0.0)

    return output
