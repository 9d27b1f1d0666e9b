"""
Apollonian Gasket Generator

Builds a fractal packing of mutually tangent circles. Three starting
curvatures give the first quadruple (three circles placed by hand, the
fourth from the Descartes Circle Theorem); every further circle is the
"second solution" tangent to three circles of an existing quadruple,
i.e. the reflection of the fourth one through the other three.

Circles keep a signed radius: the enclosing circle has a negative radius
(negative curvature), which is what makes the Descartes formulas work.

Reference: https://en.wikipedia.org/wiki/Apollonian_gasket
"""

import cmath
import math

import numpy as np

NAN = float("nan")


class DegenerateGasketError(ValueError):
    """Raised when no seed in the retry budget gives a finite gasket."""


class Circle:
    """One circle of the packing: complex center, signed radius."""

    def __init__(self, x, y, r):
        self.center = complex(x, y)
        self.radius = r
        self.reveal_frame = None  # set once by the reveal scheduler

    @property
    def curvature(self):
        """Inverse of the signed radius (nan for a zero radius)."""
        if self.radius == 0:
            return NAN
        return 1.0 / self.radius

    def is_finite(self):
        return (math.isfinite(self.radius)
                and math.isfinite(self.center.real)
                and math.isfinite(self.center.imag))

    def __repr__(self):
        return (f"Circle(x={self.center.real:.6g}, y={self.center.imag:.6g}, "
                f"r={self.radius:.6g})")


def _from_curvature(center, k):
    """Circle from a center and a curvature; zero curvature gives nan."""
    if k == 0 or not math.isfinite(k):
        return Circle(NAN, NAN, NAN)
    return Circle(center.real, center.imag, 1.0 / k)


def get_fourth_circle(circle1, circle2, circle3):
    """Circle tangent to three mutually tangent circles ("-" Descartes root).

    For three small circles this is the enclosing one (negative curvature).

    k4 = k1 + k2 + k3 - 2 * sqrt(k1k2 + k2k3 + k1k3)
    z4 = (k1z1 + k2z2 + k3z3 - 2 * sqrt(k1z1k2z2 + k2z2k3z3 + k1z1k3z3)) / k4
    """
    k1, k2, k3 = circle1.curvature, circle2.curvature, circle3.curvature
    z1, z2, z3 = circle1.center, circle2.center, circle3.center

    disc = k1 * k2 + k2 * k3 + k1 * k3
    if not disc >= 0:
        return Circle(NAN, NAN, NAN)
    k4 = k1 + k2 + k3 - 2.0 * math.sqrt(disc)
    if k4 == 0:
        return Circle(NAN, NAN, NAN)

    kz1, kz2, kz3 = k1 * z1, k2 * z2, k3 * z3
    root = cmath.sqrt(kz1 * kz2 + kz2 * kz3 + kz1 * kz3)
    z4 = (kz1 + kz2 + kz3 - 2.0 * root) / k4
    return _from_curvature(z4, k4)


def three_circles_from_radii(radius2, radius3, radius4):
    """Initial quadruple [c1, c2, c3, c4] from three radii.

    c2 sits at the origin, c3 touches it on the positive x axis, c4 touches
    both above the axis (closed-form solve of the two distance equations),
    and c1 is the circle tangent to all three.

    Args:
        radius2, radius3, radius4: Radii of the three hand-placed circles

    Returns:
        List of four Circles, the Descartes-derived c1 first
    """
    circle2 = Circle(0.0, 0.0, radius2)
    circle3 = Circle(radius2 + radius3, 0.0, radius3)

    x4 = ((radius2 * radius2 + radius2 * radius4 + radius2 * radius3
           - radius3 * radius4) / (radius2 + radius3))
    y4_sq = (radius2 + radius4) * (radius2 + radius4) - x4 * x4
    y4 = math.sqrt(y4_sq) if y4_sq >= 0 else NAN
    circle4 = Circle(x4, y4, radius4)

    circle1 = get_fourth_circle(circle2, circle3, circle4)
    return [circle1, circle2, circle3, circle4]


def second_solution(circle_fixed, circle1, circle2, circle3):
    """The other circle tangent to circle1..3, given one of them (fixed).

    k_new = 2 * (k1 + k2 + k3) - k_fixed
    z_new = (2 * (k1z1 + k2z2 + k3z3) - k_fixed * z_fixed) / k_new
    """
    kf = circle_fixed.curvature
    k1, k2, k3 = circle1.curvature, circle2.curvature, circle3.curvature

    k_new = 2.0 * (k1 + k2 + k3) - kf
    if k_new == 0 or not math.isfinite(k_new):
        return Circle(NAN, NAN, NAN)
    z_new = (2.0 * (k1 * circle1.center + k2 * circle2.center + k3 * circle3.center)
             - kf * circle_fixed.center) / k_new
    return _from_curvature(z_new, k_new)


def expected_circle_count(depth):
    """Number of circles generate(depth) produces: 2 * 3**depth + 2.

    4 initial circles; depth 0 adds the special circle and three siblings,
    each quadruple below it adds three more per level.
    """
    if depth <= 0:
        return 4
    return 2 * 3 ** depth + 2


def descartes_residual(circles):
    """(k1+k2+k3+k4)^2 - 2*(k1^2+k2^2+k3^2+k4^2) for four circles.

    Zero (up to rounding) when the four circles are mutually tangent.
    """
    k = np.array([c.curvature for c in circles], dtype=np.float64)
    return float(k.sum() ** 2 - 2.0 * (k * k).sum())


class ApollonianGasket:
    """Initial quadruple plus the depth-first list of generated circles."""

    def __init__(self, c1, c2, c3):
        """
        Args:
            c1, c2, c3: Curvatures of the three hand-placed circles
        """
        self.curvature_seed = (c1, c2, c3)
        self.initial = tuple(three_circles_from_radii(1.0 / c1, 1.0 / c2, 1.0 / c3))
        self.generated = list(self.initial)
        self.depth = 0

    def generate(self, max_depth):
        """Regenerate the packing down to `max_depth`. Returns the circle list."""
        self.generated = list(self.initial)
        self.depth = max_depth
        self._recursive_generate(list(self.initial), 0, max_depth)
        return self.generated

    def _recursive_generate(self, circles, depth, max_depth):
        """Ternary recursion; circles[0] is the circle fixed at this branch."""
        if depth >= max_depth:
            return

        c1, c2, c3, c4 = circles[:4]

        if depth == 0:
            # only the root quadruple reflects its fixed circle as well
            special = second_solution(c1, c2, c3, c4)
            self.generated.append(special)
            self._recursive_generate([special, c2, c3, c4], 1, max_depth)

        cn2 = second_solution(c2, c1, c3, c4)
        self.generated.append(cn2)
        cn3 = second_solution(c3, c1, c2, c4)
        self.generated.append(cn3)
        cn4 = second_solution(c4, c1, c2, c3)
        self.generated.append(cn4)

        self._recursive_generate([cn2, c1, c3, c4], depth + 1, max_depth)
        self._recursive_generate([cn3, c1, c2, c4], depth + 1, max_depth)
        self._recursive_generate([cn4, c1, c2, c3], depth + 1, max_depth)

    @property
    def reference(self):
        """First generated circle; sets the offset and scale of a render."""
        return self.generated[0]

    def is_degenerate(self):
        """True if any circle came out non-finite (nan/inf)."""
        return not all(c.is_finite() for c in self.generated)

    def __len__(self):
        return len(self.generated)
