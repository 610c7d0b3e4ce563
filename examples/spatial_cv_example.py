"""Example: Spatial cross-validation folds.

Compares block, cluster, buffered leave-one-out and NNDM folds on the same
synthetic survey and shows how similar train and test covariates are in each.
"""

import numpy as np

from foldsmith import (
    BlockPartitioner,
    BufferLOOPartitioner,
    ClusterPartitioner,
    DistributionMatchPartitioner,
    FoldEvaluator,
    PointSet,
    partition,
)


def main():
    """Run spatial cross-validation example."""
    print("=" * 60)
    print("Spatial Cross-Validation Folds Example")
    print("=" * 60)

    # Create synthetic survey with clustered sampling
    print("\n1. Creating clustered survey points...")
    rng = np.random.default_rng(42)
    centers = rng.uniform(100, 900, size=(8, 2))
    coords = np.concatenate([c + rng.normal(0, 40, size=(25, 2)) for c in centers])
    elevation = 200 + 0.1 * coords[:, 0] + rng.normal(0, 5, len(coords))
    rainfall = 800 - 0.2 * coords[:, 1] + rng.normal(0, 10, len(coords))
    points = PointSet(
        coordinates=coords,
        features=np.column_stack([elevation, rainfall]),
        feature_names=("elevation", "rainfall"),
    )
    print(f"Created {points}")

    # Autocorrelation range as a starting block size
    print("\n2. Estimating autocorrelation range...")
    evaluator = FoldEvaluator(points)
    estimates = evaluator.autocorrelation_range(seed=0)
    for estimate in estimates:
        print(f"  {estimate}")
    size = FoldEvaluator.suggest_size(estimates)
    size = float(np.clip(size, 100.0, 300.0))
    print(f"Block size / buffer radius: {size:.1f}")

    # Partition with each strategy
    print("\n3. Partitioning...")
    strategies = [
        BlockPartitioner(k=5, cell_size=size, seed=0),
        ClusterPartitioner(k=5, seed=0),
        BufferLOOPartitioner(radius=size),
        DistributionMatchPartitioner(
            num_sample=1000, seed=0, max_iterations=300
        ),
    ]
    for strategy in strategies:
        result = partition(points, strategy, domain=(0.0, 0.0, 1000.0, 1000.0))
        similarity = evaluator.fold_similarity(result)
        mean_train = np.mean([fold.n_train for fold in result])
        print(
            f"  {strategy.name:<10} folds={result.n_folds:<4} "
            f"mean train={mean_train:6.1f} similarity={similarity.aggregate:.3f}"
        )

    print("\n" + "=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
