"""
Palette clustering in CIE L*a*b*.

Two methods are supported:

- CENTROID: k-means (scikit-learn KMeans). Representatives are cluster means
  and may not coincide with any observed pixel.
- MEDOID: partitioning around medoids (BUILD + SWAP) on the Euclidean
  dissimilarity matrix. Representatives are always observed pixels. Memory
  and time grow quadratically with the sample count, so the sampler's stride
  matters much more here.
"""

from dataclasses import dataclass
from enum import Enum
from numbers import Integral
from typing import List, Optional

import numpy as np
from loguru import logger
from sklearn.cluster import KMeans
from sklearn.metrics import pairwise_distances
from sklearn.utils import check_random_state

from earthtones.errors import InvalidClusterCount, InvalidParameter
from earthtones.services.colors.conversion import clamp_unit, rgb_to_hex, to_display, to_perceptual


class ClusterMethod(str, Enum):
    """Supported clustering methods."""

    CENTROID = "CENTROID"
    MEDOID = "MEDOID"

    @classmethod
    def names(cls) -> List[str]:
        return [m.value for m in cls]

    @classmethod
    def parse(cls, value) -> "ClusterMethod":
        """Resolve a member, a name (any case) or the legacy kmeans/pam aliases."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            key = _METHOD_ALIASES.get(key, key)
            if key in cls.__members__:
                return cls[key]
        raise InvalidParameter(
            f"Method {value!r} is invalid or unsupported. Choose from: {', '.join(cls.names())}"
        )


_METHOD_ALIASES = {"KMEANS": "CENTROID", "PAM": "MEDOID"}


@dataclass
class ClusterResult:
    """Representatives in L*a*b* plus the per-sample assignment."""

    representatives: np.ndarray
    labels: np.ndarray
    method: ClusterMethod
    medoid_indices: Optional[np.ndarray] = None
    cost: Optional[float] = None

    @property
    def k(self) -> int:
        return int(self.representatives.shape[0])


def check_cluster_count(k, n_samples: Optional[int] = None) -> int:
    """Validate k; without n_samples only the lower bound is checked."""
    if isinstance(k, bool) or not isinstance(k, Integral):
        raise InvalidClusterCount(f"Number of colors must be an integer. Provided: {k!r}")
    if k < 1:
        raise InvalidClusterCount(f"Number of colors must be at least 1. Provided: {k}")
    if n_samples is not None and k > n_samples:
        raise InvalidClusterCount(
            f"Number of colors must be between 1 and the number of samples ({n_samples}). Provided: {k}"
        )
    return int(k)


def _pick(candidates: np.ndarray, rng: np.random.RandomState) -> int:
    """Break exact ties between equally good candidates."""
    if len(candidates) == 1:
        return int(candidates[0])
    return int(rng.choice(candidates))


def _pam_build(D: np.ndarray, k: int, rng: np.random.RandomState) -> np.ndarray:
    """Greedy BUILD phase: each new medoid maximizes the drop in total cost."""
    total = D.sum(axis=1)
    medoids = [_pick(np.flatnonzero(total == total.min()), rng)]
    nearest = D[medoids[0]].copy()

    for _ in range(1, k):
        gain = np.maximum(nearest[None, :] - D, 0.0).sum(axis=1)
        gain[medoids] = -np.inf
        h = _pick(np.flatnonzero(gain == gain.max()), rng)
        medoids.append(h)
        nearest = np.minimum(nearest, D[h])

    return np.array(medoids, dtype=np.intp)


def _pam_swap(D: np.ndarray, medoids: np.ndarray, max_iter: int):
    """SWAP phase: apply the best medoid/non-medoid exchange until none helps."""
    n = D.shape[0]
    k = len(medoids)
    rows = np.arange(n)
    cost = float(D[:, medoids].min(axis=1).sum())

    for iteration in range(max_iter):
        dm = D[:, medoids]
        order = np.argsort(dm, axis=1, kind="stable")
        nearest_pos = order[:, 0]
        d1 = dm[rows, nearest_pos]
        d2 = dm[rows, order[:, 1]] if k > 1 else np.full(n, np.inf)

        is_medoid = np.zeros(n, dtype=bool)
        is_medoid[medoids] = True

        best_cost, best_swap = cost, None
        tol = 1e-9 * max(1.0, cost)
        for i in range(k):
            # distance each point would have to the remaining medoids if i left
            base = np.where(nearest_pos == i, d2, d1)
            costs = np.minimum(D, base[None, :]).sum(axis=1)
            costs[is_medoid] = np.inf
            h = int(np.argmin(costs))
            if costs[h] < best_cost - tol:
                best_cost, best_swap = float(costs[h]), (i, h)

        if best_swap is None:
            logger.debug(f"PAM converged after {iteration} swap(s), cost={cost:.3f}")
            break
        i, h = best_swap
        medoids[i] = h
        cost = best_cost
    else:
        logger.warning(f"PAM stopped after max_iter={max_iter} swaps without converging")

    return medoids, cost


def _cluster_medoid(samples: np.ndarray, k: int, random_state, max_iter: int) -> ClusterResult:
    rng = check_random_state(random_state)
    D = pairwise_distances(samples, metric="euclidean")
    medoids = _pam_build(D, k, rng)
    medoids, cost = _pam_swap(D, medoids, max_iter)
    labels = np.argmin(D[:, medoids], axis=1)
    return ClusterResult(
        representatives=samples[medoids].copy(),
        labels=labels,
        method=ClusterMethod.MEDOID,
        medoid_indices=medoids,
        cost=cost,
    )


def _cluster_centroid(samples: np.ndarray, k: int, random_state, max_iter: int) -> ClusterResult:
    kmeans = KMeans(
        n_clusters=k,
        random_state=random_state,
        n_init="auto",
        max_iter=max_iter,
    )
    labels = kmeans.fit_predict(samples)
    return ClusterResult(
        representatives=np.asarray(kmeans.cluster_centers_, dtype=np.float64),
        labels=labels,
        method=ClusterMethod.CENTROID,
        cost=float(kmeans.inertia_),
    )


def sort_by_lightness(result: ClusterResult) -> ClusterResult:
    """Reorder representatives by ascending L* and relabel samples to match."""
    order = np.argsort(result.representatives[:, 0], kind="stable")
    remap = np.empty_like(order)
    remap[order] = np.arange(len(order))
    return ClusterResult(
        representatives=result.representatives[order],
        labels=remap[result.labels],
        method=result.method,
        medoid_indices=None if result.medoid_indices is None else result.medoid_indices[order],
        cost=result.cost,
    )


def cluster_samples(samples, k: int, method=ClusterMethod.MEDOID,
                    random_state=None, sort_lightness: bool = False,
                    max_iter: int = 300) -> ClusterResult:
    """
    Cluster L*a*b* samples into exactly k representatives.

    Args:
        samples: L*a*b* points (N, 3)
        k: Number of representatives, 1 <= k <= N
        method: ClusterMethod or its name
        random_state: Seed or RandomState; None is non-deterministic
        sort_lightness: Reorder representatives by ascending L*
        max_iter: Iteration cap for k-means / PAM swaps

    Returns:
        ClusterResult in the algorithm's natural order (unless sorted)

    Raises:
        InvalidParameter: Unknown method
        InvalidClusterCount: k outside 1..N
    """
    method = ClusterMethod.parse(method)
    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim != 2 or samples.shape[1] != 3:
        raise ValueError(f"Expected samples of shape (N, 3), got {samples.shape}")
    k = check_cluster_count(k, samples.shape[0])

    logger.info(f"Starting {method.value} clustering with k={k}, {samples.shape[0]} samples")
    if method is ClusterMethod.MEDOID:
        result = _cluster_medoid(samples, k, random_state, max_iter)
    else:
        result = _cluster_centroid(samples, k, random_state, max_iter)

    if sort_lightness:
        result = sort_by_lightness(result)
    return result


def representatives_to_hex(representatives) -> List[str]:
    """Map L*a*b* representatives to display space, clamp and format as #RRGGBB."""
    rgb = clamp_unit(to_display(representatives))
    return [rgb_to_hex(c) for c in rgb]


def extract_palette(samples_rgb, k: int, method=ClusterMethod.MEDOID,
                    random_state=None, sort_lightness: bool = False) -> List[str]:
    """
    Full color pipeline on RGB samples in [0, 1]: convert, cluster, convert back.

    Returns:
        List of k uppercase #RRGGBB strings
    """
    lab = to_perceptual(samples_rgb)
    result = cluster_samples(lab, k, method, random_state=random_state, sort_lightness=sort_lightness)
    palette = representatives_to_hex(result.representatives)
    logger.info(f"Clustering successful: {palette}")
    return palette
