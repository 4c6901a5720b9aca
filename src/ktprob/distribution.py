from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, TypeVar, Callable, List, Generic, Tuple, Any, ClassVar, Iterator, Mapping, Optional, Union
from fractions import Fraction
from functools import partial, wraps
from math import comb, factorial
from numbers import Rational, Real
from types import MappingProxyType
import operator

from .errors import InvalidConfigurationError, ProbabilityDriftError


T = TypeVar('T')
U = TypeVar('U')
J = TypeVar('J')

F = TypeVar('F', bound=Callable[..., Any])  # Function type


@dataclass(frozen=True)
class Distribution(Generic[T]):
    """An exact discrete probability distribution.

    Probabilities are kept as ``Fraction`` so that no rounding creeps in while
    outcomes are enumerated and merged. Instances are never mutated: every
    operation returns a new distribution, and ``probabilities`` is a read-only
    view so a shared (memoized) instance cannot be changed by its callers.
    """

    TOLERANCE : ClassVar[Fraction] = Fraction(1, 1000000000)

    probabilities: Mapping[T, Fraction]

    def __post_init__(self):
        if not isinstance(self.probabilities, MappingProxyType):
            object.__setattr__(self, 'probabilities', MappingProxyType(dict(self.probabilities)))

    def __str__(self) -> str:
        joiner = ",\n"

        try:
            # Try to sort keys, fall back to unsorted if not comparable
            items = sorted(
                [(k, float(v)) for k, v in self.probabilities.items()],
                key=lambda x: x[0]  # type: ignore
            )
            return f"Dist[\n{joiner.join(f'{str(k)}:{v}' for k, v in items)}]"
        except TypeError:
            # If keys can't be sorted, use original unsorted format
            items = [f"{str(k)}:{float(v)}" for k, v in self.probabilities.items()]
            return f"Dist[{joiner.join(items)}]"

    @classmethod
    def singleton(cls, x: T) -> 'Distribution[T]':
        return cls({x: Fraction(1)})

    @classmethod
    def uniform(cls, xs: List[T]) -> 'Distribution[T]':
        n = len(xs)
        return cls({x: Fraction(1, n) for x in xs})

    @classmethod
    def binomial(cls, n: int, p: Fraction) -> 'Distribution[int]':
        """Number of successes in ``n`` independent trials of probability ``p``."""
        if p == 0 or n == 0:
            return cls.singleton(0)
        if p == 1:
            return cls.singleton(n)
        q = 1 - p
        return cls({k: comb(n, k) * p ** k * q ** (n - k) for k in range(n + 1)})

    @classmethod
    def from_mapping(cls, mapping: Mapping[Any, Any]) -> 'Distribution[int]':
        """Build a damage distribution from a plain ``{damage: probability}`` mapping."""
        result: Dict[int, Fraction] = {}
        for key, value in mapping.items():
            if isinstance(key, bool) or not isinstance(key, int):
                raise InvalidConfigurationError(f"Damage values must be integers, got {key!r}")
            if isinstance(value, bool) or not isinstance(value, Real):
                raise InvalidConfigurationError(f"Probability for {key} is not a number: {value!r}")
            p = value if isinstance(value, Rational) else Fraction(float(value))
            if p < 0:
                raise InvalidConfigurationError(f"Probability for {key} is negative: {value!r}")
            if p:
                result[key] = result.get(key, Fraction(0)) + Fraction(p)
        return cls(result)

    def get(self, x: T) -> Fraction:
        return self.probabilities.get(x, Fraction(0))

    def total(self) -> Fraction:
        return sum(self.probabilities.values(), Fraction(0))

    def check_total(self, what: str = "distribution") -> 'Distribution[T]':
        """Return self, or raise if the probability mass has drifted away from 1."""
        total = self.total()
        if abs(total - 1) > Distribution.TOLERANCE:
            raise ProbabilityDriftError(f"{what} sums to {float(total)!r}, expected 1")
        return self

    def map(self, f: Callable[[T], U]) -> 'Distribution[U]':
        result: Dict[U, Fraction] = {}
        for x, p in self.probabilities.items():
            y = f(x)
            result[y] = result.get(y, Fraction(0)) + p
        return Distribution(result)

    def bind(self, f: Callable[[T], 'Distribution[U]']) -> 'Distribution[U]':
        """Monadic bind (>>=) for distributions.
        Maps each value to a new distribution and combines the results."""
        result: Dict[U, Fraction] = {}
        for x, p1 in self.probabilities.items():
            for y, p2 in f(x).probabilities.items():
                result[y] = result.get(y, Fraction(0)) + p1 * p2
        return Distribution(result)

    def bind_on_match(self, key_pred: Callable[[T], bool], f: Callable[[T], 'Distribution[T]']) -> 'Distribution[T]':

        def bind_fn(some_key: T) -> 'Distribution[T]':
            if key_pred(some_key):
                return f(some_key)
            return Distribution.singleton(some_key)

        return self.bind(bind_fn)

    def combine(self, other: 'Distribution[J]', f: Callable[[T, J], U]) -> 'Distribution[U]':
        """Joint outcome of two independent distributions, merged through ``f``."""
        result: Dict[U, Fraction] = {}
        for (x, p1) in self.probabilities.items():
            for (y, p2) in other.probabilities.items():
                z = f(x, y)
                result[z] = result.get(z, Fraction(0)) + p1 * p2
        return Distribution(result)

    def multinomial(self, n: int, f: Callable[[Dict[T, int]], U]) -> 'Distribution[U]':
        """Distribution of ``n`` independent draws from self.

        Each way of splitting the ``n`` draws between the outcomes is weighted by
        its multinomial coefficient, then passed to ``f`` as an
        ``{outcome: count}`` dict and merged by the value ``f`` returns.
        """
        outcomes = list(self.probabilities.items())
        result: Dict[U, Fraction] = {}
        for counts in _compositions(n, len(outcomes)):
            coefficient = factorial(n)
            p = Fraction(1)
            for (_, p_outcome), k in zip(outcomes, counts):
                coefficient //= factorial(k)
                p *= p_outcome ** k
            y = f({x: k for (x, _), k in zip(outcomes, counts)})
            result[y] = result.get(y, Fraction(0)) + coefficient * p
        return Distribution(result)

    def to_floats(self) -> Dict[T, float]:
        """Plain ``{outcome: float}`` view, sorted by outcome where possible."""
        try:
            keys = sorted(self.probabilities)  # type: ignore
        except TypeError:
            keys = list(self.probabilities)
        return {k: float(self.probabilities[k]) for k in keys}

    def __hash__(self) -> int:
        return hash(frozenset(self.probabilities.items()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Distribution):
            return False
        return dict(self.probabilities) == dict(other.probabilities)


def _compositions(n: int, k: int) -> Iterator[Tuple[int, ...]]:
    """Every tuple of ``k`` non-negative ints summing to ``n``."""
    if k == 0:
        if n == 0:
            yield ()
        return
    if k == 1:
        yield (n,)
        return
    for first in range(n + 1):
        for rest in _compositions(n - first, k - 1):
            yield (first,) + rest


# Common distributions
d6 = Distribution.uniform(list(range(1, 7)))


def memoize(f: Optional[F] = None, *, maxsize: Optional[int] = None) -> Any:
    """Decorator that memoizes a function's return value based on its arguments.

    Arguments must be hashable; frozen dataclasses compare by value, so equal
    profiles share one cache entry. With ``maxsize`` the cache keeps only the
    most recently used entries. ``cache_clear`` empties the cache and
    ``cache_len`` reports how many entries it holds.
    """
    if f is None:
        return partial(memoize, maxsize=maxsize)

    cache: 'OrderedDict[Tuple[Tuple[Any, ...], Tuple[Tuple[str, Any], ...]], Any]' = OrderedDict()

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        key = (args, tuple(sorted(kwargs.items())))

        if key in cache:
            cache.move_to_end(key)
            return cache[key]

        result = cache[key] = f(*args, **kwargs)
        if maxsize is not None and len(cache) > maxsize:
            cache.popitem(last=False)
        return result

    wrapper.cache_clear = cache.clear  # type: ignore
    wrapper.cache_len = cache.__len__  # type: ignore
    return wrapper


def lift(f: Callable[[T], U]) -> Callable[['Distribution[T]'], 'Distribution[U]']:
    def lifted(dist: Distribution[T]) -> Distribution[U]:
        return dist.map(f)
    return lifted


def liftM(f: Callable[[T], 'Distribution[U]']) -> Callable[['Distribution[T]'], 'Distribution[U]']:
    """Lift a function T -> Distribution[U] to Distribution[T] -> Distribution[U]."""
    def lifted(dist: Distribution[T]) -> Distribution[U]:
        return dist.bind(f)
    return lifted


DamageMapping = Union[Distribution[int], Mapping[int, Any]]


def as_distribution(mapping: DamageMapping) -> Distribution[int]:
    if isinstance(mapping, Distribution):
        return mapping
    return Distribution.from_mapping(mapping)


def expected_value(mapping: DamageMapping) -> float:
    """Average damage. An empty mapping averages to 0."""
    dist = as_distribution(mapping)
    return float(sum((dmg * p for dmg, p in dist.probabilities.items()), Fraction(0)))


def kill_probability(mapping: DamageMapping, wounds: int) -> float:
    """Chance that at least ``wounds`` damage is dealt."""
    if isinstance(wounds, bool) or not isinstance(wounds, int) or wounds <= 0:
        raise InvalidConfigurationError(f"wounds must be a positive integer, got {wounds!r}")
    dist = as_distribution(mapping)
    return float(sum((p for dmg, p in dist.probabilities.items() if dmg >= wounds), Fraction(0)))


def combine(mapping_a: DamageMapping, mapping_b: DamageMapping) -> Distribution[int]:
    """Distribution of the summed damage of two independent exchanges."""
    a = as_distribution(mapping_a)
    b = as_distribution(mapping_b)
    for name, dist in (("first", a), ("second", b)):
        if abs(dist.total() - 1) > Distribution.TOLERANCE:
            raise InvalidConfigurationError(
                f"{name} distribution sums to {float(dist.total())!r}, expected 1")
    return a.combine(b, operator.add).check_total("combined distribution")
