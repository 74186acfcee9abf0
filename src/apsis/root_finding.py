'''Universal-variable Kepler propagation package
Bracketed root finding

All solvers work on an Interval bracket and raise ConvergenceError when
their iteration budget runs out.'''

from .intervals import Interval
from .utils import convergence_failure


def find_root_bracket(f, center, radius, num_iterations):
    """
    Find an interval around `center` on which `f` changes sign.

    The search radius doubles each iteration until f(center - r) and
    f(center + r) have opposite signs.

    Parameters
    ----------
    f : callable
        Scalar function of one float
    center : float
        Center of the symmetric search interval
    radius : float
        Initial half-width of the search interval
    num_iterations : int
        Maximum number of doublings

    Returns
    -------
    Interval
        Bracket with f(lo) * f(hi) < 0

    Raises
    ------
    ConvergenceError
        If no sign change is found within the budget
    """
    initial_radius = radius
    for _ in range(num_iterations):
        a = center - radius
        b = center + radius

        if f(a) * f(b) < 0.0:
            return Interval(a, b)

        radius *= 2.0

    convergence_failure(
        f"Unable to find two points of opposite sign, starting at {center} "
        f"with radius {initial_radius} ({num_iterations} iterations)"
    )


def _shrink(interval, guess, lo_is_neg, value_is_neg):
    # keep the half on which the sign change survives
    if lo_is_neg == value_is_neg:
        return interval.split_right(guess)
    return interval.split_left(guess)


def bisection(f, interval, num_iterations):
    """
    Plain bisection on a sign-changing bracket.

    Converges when the midpoint is no longer distinct from an endpoint
    in floating point.

    Parameters
    ----------
    f : callable
        Scalar function of one float
    interval : Interval
        Bracket containing a sign change
    num_iterations : int
        Maximum number of halvings

    Returns
    -------
    float
        Root location

    Raises
    ------
    ConvergenceError
        If the budget runs out before convergence
    """
    lo_is_neg = f(interval.lo) < 0.0

    for _ in range(num_iterations):
        guess = interval.midpoint()

        if guess == interval.lo or guess == interval.hi:
            return guess

        value = f(guess)
        interval = _shrink(interval, guess, lo_is_neg, value < 0.0)

    convergence_failure(
        f"Hit max iterations ({num_iterations}) when trying to find a root in {interval}"
    )


def newton_plus_bisection(f_and_f_prime, interval, num_iterations):
    """
    Safeguarded Newton iteration (rtsafe).

    Keeps a shrinking bracket like bisection, but takes the Newton step
    whenever it lands strictly inside the current bracket.

    Parameters
    ----------
    f_and_f_prime : callable
        Returns (f(x), f'(x))
    interval : Interval
        Bracket containing a sign change
    num_iterations : int
        Maximum number of iterations

    Returns
    -------
    float
        Root location

    Raises
    ------
    ConvergenceError
        If the budget runs out before convergence
    """
    guess = interval.midpoint()
    lo_is_neg = f_and_f_prime(interval.lo)[0] < 0.0

    for _ in range(num_iterations):
        f, f_prime = f_and_f_prime(guess)

        interval = _shrink(interval, guess, lo_is_neg, f < 0.0)

        midpoint = interval.midpoint()
        if midpoint == interval.lo or midpoint == interval.hi:
            return guess

        if f_prime != 0.0:
            newton_guess = guess - f / f_prime
        else:
            newton_guess = midpoint

        # an endpoint guess cannot shrink the bracket
        if interval.lo < newton_guess < interval.hi:
            guess = newton_guess
        else:
            guess = midpoint

    convergence_failure(
        f"Hit max iterations ({num_iterations}) when trying to find a root in {interval}"
    )
