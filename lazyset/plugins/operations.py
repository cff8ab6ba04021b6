"""
Bundled stateless operations. Arity decides how each one is applied to a
sequence: unary ones map, binary ones broadcast or zip, variadic ones
reduce.
"""

import builtins
import math


# --------- algebraic ----------
def sq(v):
    """Square of v"""
    return v * v


def inv(v):
    """Reciprocal of v"""
    return 1 / v


def neg(v):
    return -v


# --------- arithmetic ----------
def add(a, b):
    return a + b


def sub(a, b):
    return a - b


def mul(a, b):
    return a * b


def div(a, b):
    return a / b


def mod(a, b):
    """Modulo with the sign of the divisor"""
    return a % b


# --------- reductions ----------
def total(*args):
    """Sum of all arguments (0 when empty)"""
    return builtins.sum(args)


def mean(*args):
    """Arithmetic mean (0 when empty)"""
    return builtins.sum(args) / len(args) if args else 0


def minimum(*args):
    """Smallest argument (inf when empty)"""
    return builtins.min(args) if args else math.inf


def maximum(*args):
    """Largest argument (-inf when empty)"""
    return builtins.max(args) if args else -math.inf


# --------- utility ----------
def clamp(v, lo, hi):
    """Limit v to the closed range [lo, hi]"""
    return builtins.min(hi, builtins.max(v, lo))


def sigmoid(x):
    return 1 / (1 + math.exp(-x))


# --------- number theory ----------
def factorial(n):
    if n < 0:
        raise ValueError("factorial requires n >= 0")
    return math.factorial(n)


def gcd(a, b):
    """Greatest common divisor of two integers"""
    return math.gcd(a, b)


def lcm(a, b):
    """Least common multiple of two integers"""
    return abs(a * b) // math.gcd(a, b or 1)


def first_divisor(n):
    """Smallest divisor > 1 of n (n itself when prime, n when n < 2)"""
    if n < 2:
        return n
    if n % 2 == 0:
        return 2
    if n % 3 == 0:
        return 3
    limit = math.isqrt(n)
    d = 5
    while d <= limit:
        if n % d == 0:
            return d
        if n % (d + 2) == 0:
            return d + 2
        d += 6
    return n


def is_prime(n) -> bool:
    return n >= 2 and first_divisor(n) == n


OPERATIONS = {
    "sq": sq,
    "inv": inv,
    "neg": neg,
    "add": add,
    "sub": sub,
    "mul": mul,
    "div": div,
    "mod": mod,
    "scale": mul,
    "shift": add,
    "sum": total,
    "mean": mean,
    "min": minimum,
    "max": maximum,
    "clamp": clamp,
    "sigmoid": sigmoid,
    "factorial": factorial,
    "gcd": gcd,
    "lcm": lcm,
    "first_divisor": first_divisor,
    "is_prime": is_prime,
}

# Subset of the math module exposed as operations; arity comes from each
# function's own signature.
MATH_OPERATIONS = {
    name: getattr(math, name)
    for name in (
        "sqrt", "exp", "log2", "log10", "floor", "ceil", "trunc", "fabs",
        "sin", "cos", "tan", "atan2", "pow", "hypot", "isqrt", "degrees", "radians",
    )
}
MATH_OPERATIONS["abs"] = abs
