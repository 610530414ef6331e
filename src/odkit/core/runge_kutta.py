"""Embedded Runge-Kutta coefficient sets.

Each named set holds the Butcher tableau of an embedded pair: the coupling
coefficients ``a``, the node fractions ``c``, and one row of weights ``b`` per
order (lower order first). Tables are built once at import time and exposed
as read-only arrays.

References:
    Fehlberg, E. Classical fifth-, sixth-, seventh-, and eighth-order
        Runge-Kutta formulas with stepsize control, NASA TR R-287, 1968.
    Fehlberg, E. Low-order classical Runge-Kutta formulas with stepsize
        control and their application to some heat transfer problems,
        NASA TR R-315, 1969.
    Prince, P.J., Dormand, J.R. High order embedded Runge-Kutta formulae,
        J. Comput. Appl. Math. 7(1), 1981.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from odkit.utils.constants import RUNGE_KUTTA_COEFFICIENT_TOLERANCE

logger = logging.getLogger(__name__)


class CoefficientSet(Enum):
    """Named embedded Runge-Kutta coefficient sets."""

    RKF45 = "rkf45"
    RKF56 = "rkf56"
    RKF78 = "rkf78"
    RK87_DORMAND_PRINCE = "rk87_dormand_prince"


class OrderToIntegrate(Enum):
    """Which weight row propagates the solution."""

    LOWER = 0
    HIGHER = 1


@dataclass(frozen=True)
class RungeKuttaCoefficients:
    """Butcher tableau of an embedded Runge-Kutta pair.

    Attributes:
        name: Coefficient set this tableau belongs to.
        a: Coupling coefficients, strictly lower triangular, shape (s, s).
        b: Weights, lower order row first, shape (2, s).
        c: Node fractions, shape (s,).
        lower_order: Order of the lower-order solution.
        higher_order: Order of the higher-order solution.
        order_to_integrate: Which solution is propagated.
    """

    name: CoefficientSet
    a: NDArray[np.float64]
    b: NDArray[np.float64]
    c: NDArray[np.float64]
    lower_order: int
    higher_order: int
    order_to_integrate: OrderToIntegrate

    @property
    def number_of_stages(self) -> int:
        return self.c.size


def _build(
    name: CoefficientSet,
    a_rows: list[list[float]],
    b_rows: list[list[float]],
    c: list[float],
    lower_order: int,
    higher_order: int,
    order_to_integrate: OrderToIntegrate,
) -> RungeKuttaCoefficients:
    stages = len(c)
    a = np.zeros((stages, stages))
    # a_rows holds rows 1..s-1; row 0 is all zeros.
    for i, row in enumerate(a_rows, start=1):
        a[i, :len(row)] = row

    b = np.array(b_rows, dtype=np.float64)
    c_array = np.array(c, dtype=np.float64)
    for array in (a, b, c_array):
        array.flags.writeable = False

    return RungeKuttaCoefficients(
        name=name,
        a=a,
        b=b,
        c=c_array,
        lower_order=lower_order,
        higher_order=higher_order,
        order_to_integrate=order_to_integrate,
    )


_RKF45 = _build(
    CoefficientSet.RKF45,
    a_rows=[
        [1.0 / 4.0],
        [3.0 / 32.0, 9.0 / 32.0],
        [1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0],
        [439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0],
        [-8.0 / 27.0, 2.0, -3544.0 / 2565.0, 1859.0 / 4104.0, -11.0 / 40.0],
    ],
    b_rows=[
        [25.0 / 216.0, 0.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0, 0.0],
        [16.0 / 135.0, 0.0, 6656.0 / 12825.0, 28561.0 / 56430.0, -9.0 / 50.0, 2.0 / 55.0],
    ],
    c=[0.0, 1.0 / 4.0, 3.0 / 8.0, 12.0 / 13.0, 1.0, 1.0 / 2.0],
    lower_order=4,
    higher_order=5,
    order_to_integrate=OrderToIntegrate.LOWER,
)

_RKF56 = _build(
    CoefficientSet.RKF56,
    a_rows=[
        [1.0 / 6.0],
        [4.0 / 75.0, 16.0 / 75.0],
        [5.0 / 6.0, -8.0 / 3.0, 5.0 / 2.0],
        [-8.0 / 5.0, 144.0 / 25.0, -4.0, 16.0 / 25.0],
        [361.0 / 320.0, -18.0 / 5.0, 407.0 / 128.0, -11.0 / 80.0, 55.0 / 128.0],
        [-11.0 / 640.0, 0.0, 11.0 / 256.0, -11.0 / 160.0, 11.0 / 256.0, 0.0],
        [93.0 / 640.0, -18.0 / 5.0, 803.0 / 256.0, -11.0 / 160.0, 99.0 / 256.0, 0.0, 1.0],
    ],
    b_rows=[
        [31.0 / 384.0, 0.0, 1125.0 / 2816.0, 9.0 / 32.0, 125.0 / 768.0, 5.0 / 66.0, 0.0, 0.0],
        [7.0 / 1408.0, 0.0, 1125.0 / 2816.0, 9.0 / 32.0, 125.0 / 768.0, 0.0, 5.0 / 66.0, 5.0 / 66.0],
    ],
    c=[0.0, 1.0 / 6.0, 4.0 / 15.0, 2.0 / 3.0, 4.0 / 5.0, 1.0, 0.0, 1.0],
    lower_order=5,
    higher_order=6,
    order_to_integrate=OrderToIntegrate.LOWER,
)

_RKF78 = _build(
    CoefficientSet.RKF78,
    a_rows=[
        [2.0 / 27.0],
        [1.0 / 36.0, 1.0 / 12.0],
        [1.0 / 24.0, 0.0, 1.0 / 8.0],
        [5.0 / 12.0, 0.0, -25.0 / 16.0, 25.0 / 16.0],
        [1.0 / 20.0, 0.0, 0.0, 1.0 / 4.0, 1.0 / 5.0],
        [-25.0 / 108.0, 0.0, 0.0, 125.0 / 108.0, -65.0 / 27.0, 125.0 / 54.0],
        [31.0 / 300.0, 0.0, 0.0, 0.0, 61.0 / 225.0, -2.0 / 9.0, 13.0 / 900.0],
        [2.0, 0.0, 0.0, -53.0 / 6.0, 704.0 / 45.0, -107.0 / 9.0, 67.0 / 90.0, 3.0],
        [-91.0 / 108.0, 0.0, 0.0, 23.0 / 108.0, -976.0 / 135.0, 311.0 / 54.0, -19.0 / 60.0,
         17.0 / 6.0, -1.0 / 12.0],
        [2383.0 / 4100.0, 0.0, 0.0, -341.0 / 164.0, 4496.0 / 1025.0, -301.0 / 82.0,
         2133.0 / 4100.0, 45.0 / 82.0, 45.0 / 164.0, 18.0 / 41.0],
        [3.0 / 205.0, 0.0, 0.0, 0.0, 0.0, -6.0 / 41.0, -3.0 / 205.0, -3.0 / 41.0, 3.0 / 41.0,
         6.0 / 41.0, 0.0],
        [-1777.0 / 4100.0, 0.0, 0.0, -341.0 / 164.0, 4496.0 / 1025.0, -289.0 / 82.0,
         2193.0 / 4100.0, 51.0 / 82.0, 33.0 / 164.0, 12.0 / 41.0, 0.0, 1.0],
    ],
    b_rows=[
        [41.0 / 840.0, 0.0, 0.0, 0.0, 0.0, 34.0 / 105.0, 9.0 / 35.0, 9.0 / 35.0, 9.0 / 280.0,
         9.0 / 280.0, 41.0 / 840.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 0.0, 0.0, 34.0 / 105.0, 9.0 / 35.0, 9.0 / 35.0, 9.0 / 280.0,
         9.0 / 280.0, 0.0, 41.0 / 840.0, 41.0 / 840.0],
    ],
    c=[0.0, 2.0 / 27.0, 1.0 / 9.0, 1.0 / 6.0, 5.0 / 12.0, 1.0 / 2.0, 5.0 / 6.0, 1.0 / 6.0,
       2.0 / 3.0, 1.0 / 3.0, 1.0, 0.0, 1.0],
    lower_order=7,
    higher_order=8,
    order_to_integrate=OrderToIntegrate.LOWER,
)

_RK87_DORMAND_PRINCE = _build(
    CoefficientSet.RK87_DORMAND_PRINCE,
    a_rows=[
        [1.0 / 18.0],
        [1.0 / 48.0, 1.0 / 16.0],
        [1.0 / 32.0, 0.0, 3.0 / 32.0],
        [5.0 / 16.0, 0.0, -75.0 / 64.0, 75.0 / 64.0],
        [3.0 / 80.0, 0.0, 0.0, 3.0 / 16.0, 3.0 / 20.0],
        [29443841.0 / 614563906.0, 0.0, 0.0, 77736538.0 / 692538347.0,
         -28693883.0 / 1125000000.0, 23124283.0 / 1800000000.0],
        [16016141.0 / 946692911.0, 0.0, 0.0, 61564180.0 / 158732637.0,
         22789713.0 / 633445777.0, 545815736.0 / 2771057229.0, -180193667.0 / 1043307555.0],
        [39632708.0 / 573591083.0, 0.0, 0.0, -433636366.0 / 683701615.0,
         -421739975.0 / 2616292301.0, 100302831.0 / 723423059.0, 790204164.0 / 839813087.0,
         800635310.0 / 3783071287.0],
        [246121993.0 / 1340847787.0, 0.0, 0.0, -37695042795.0 / 15268766246.0,
         -309121744.0 / 1061227803.0, -12992083.0 / 490766935.0, 6005943493.0 / 2108947869.0,
         393006217.0 / 1396673457.0, 123872331.0 / 1001029789.0],
        [-1028468189.0 / 846180014.0, 0.0, 0.0, 8478235783.0 / 508512852.0,
         1311729495.0 / 1432422823.0, -10304129995.0 / 1701304382.0,
         -48777925059.0 / 3047939560.0, 15336726248.0 / 1032824649.0,
         -45442868181.0 / 3398467696.0, 3065993473.0 / 597172653.0],
        [185892177.0 / 718116043.0, 0.0, 0.0, -3185094517.0 / 667107341.0,
         -477755414.0 / 1098053517.0, -703635378.0 / 230739211.0, 5731566787.0 / 1027545527.0,
         5232866602.0 / 850066563.0, -4093664535.0 / 808688257.0, 3962137247.0 / 1805957418.0,
         65686358.0 / 487910083.0],
        [403863854.0 / 491063109.0, 0.0, 0.0, -5068492393.0 / 434740067.0,
         -411421997.0 / 543043805.0, 652783627.0 / 914296604.0, 11173962825.0 / 925320556.0,
         -13158990841.0 / 6184727034.0, 3936647629.0 / 1978049680.0, -160528059.0 / 685178525.0,
         248638103.0 / 1413531060.0, 0.0],
    ],
    b_rows=[
        [13451932.0 / 455176623.0, 0.0, 0.0, 0.0, 0.0, -808719846.0 / 976000145.0,
         1757004468.0 / 5645159321.0, 656045339.0 / 265891186.0, -3867574721.0 / 1518517206.0,
         465885868.0 / 322736535.0, 53011238.0 / 667516719.0, 2.0 / 45.0, 0.0],
        [14005451.0 / 335480064.0, 0.0, 0.0, 0.0, 0.0, -59238493.0 / 1068277825.0,
         181606767.0 / 758867731.0, 561292985.0 / 797845732.0, -1041891430.0 / 1371343529.0,
         760417239.0 / 1151165299.0, 118820643.0 / 751138087.0, -528747749.0 / 2220607170.0,
         1.0 / 4.0],
    ],
    c=[0.0, 1.0 / 18.0, 1.0 / 12.0, 1.0 / 8.0, 5.0 / 16.0, 3.0 / 8.0, 59.0 / 400.0,
       93.0 / 200.0, 5490023248.0 / 9719169821.0, 13.0 / 20.0, 1201146811.0 / 1299019798.0,
       1.0, 1.0],
    lower_order=7,
    higher_order=8,
    order_to_integrate=OrderToIntegrate.HIGHER,
)

_COEFFICIENT_SETS: dict[CoefficientSet, RungeKuttaCoefficients] = {
    coefficients.name: coefficients
    for coefficients in (_RKF45, _RKF56, _RKF78, _RK87_DORMAND_PRINCE)
}


def get_coefficients(coefficient_set: CoefficientSet) -> RungeKuttaCoefficients:
    """Return the Butcher tableau of a named coefficient set.

    Raises:
        ValueError: If the coefficient set is unknown.
    """
    try:
        return _COEFFICIENT_SETS[coefficient_set]
    except KeyError:
        logger.error("Unknown Runge-Kutta coefficient set %r", coefficient_set)
        raise ValueError(f"Unknown Runge-Kutta coefficient set: {coefficient_set!r}") from None


def _close_fraction(expected: float, actual: float, tolerance: float) -> bool:
    return abs(expected - actual) <= tolerance * max(abs(expected), abs(actual))


def validate_coefficients(
    coefficients: RungeKuttaCoefficients,
    tolerance: float = RUNGE_KUTTA_COEFFICIENT_TOLERANCE,
) -> list[str]:
    """Check the structural consistency of a Butcher tableau.

    Checks that each weight row sums to one, that the first node fraction is
    zero, and that every other node fraction equals the sum of its row of
    coupling coefficients (both being zero counts as equal).

    Args:
        coefficients: Tableau to check.
        tolerance: Relative tolerance for sums, absolute tolerance for zeros.

    Returns:
        Descriptions of all violations; empty if the tableau is consistent.
    """
    violations: list[str] = []

    for order_index, weight_sum in enumerate(coefficients.b.sum(axis=1)):
        if not _close_fraction(1.0, float(weight_sum), tolerance):
            violations.append(f"weights of row {order_index} sum to {weight_sum!r}, expected 1")

    if abs(coefficients.c[0]) >= tolerance:
        violations.append(f"first node fraction is {coefficients.c[0]!r}, expected 0")

    row_sums = coefficients.a.sum(axis=1)
    for i in range(1, coefficients.number_of_stages):
        node = float(coefficients.c[i])
        row_sum = float(row_sums[i])
        if abs(node) < tolerance:
            if abs(row_sum) >= tolerance:
                violations.append(f"stage {i}: node fraction is 0 but coupling row sums to {row_sum!r}")
        elif not _close_fraction(node, row_sum, tolerance):
            violations.append(f"stage {i}: node fraction {node!r} differs from coupling row sum {row_sum!r}")

    if violations:
        logger.warning("Coefficient set %s has %d violations", coefficients.name.value, len(violations))
    return violations
