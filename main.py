"""
Cluster post-operative patients into recovery phenotypes.

Outputs to:
  results/
    assignments.csv
    cluster_summary.csv
    feature_importance.csv
    kmeans_k_metrics.csv

Run:
  python -u main.py

Optional:
  python -u main.py --data patients.csv --state_dir state --k 4 --k_min 2 --k_max 8
"""

import argparse
import logging
import os
from dataclasses import asdict

import numpy as np
import pandas as pd

from recovery_phenotypes.config import DEFAULT_K, DEFAULT_MAX_ITERATIONS, DEFAULT_RANDOM_SEED
from recovery_phenotypes.data_loader import FeatureVectorLoader
from recovery_phenotypes.engine import ClusteringEngine
from recovery_phenotypes.evaluation import knee_point, stability_ari
from recovery_phenotypes.persistence import FileStore, InMemoryStore

DEFAULT_OUT_DIR = "results"


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--data", default=None, help="CSV with one row per patient (default: synthetic corpus)")
    parser.add_argument("--state_dir", default=None, help="directory for persisted engine state")
    parser.add_argument("--out_dir", default=DEFAULT_OUT_DIR)
    parser.add_argument("--k", type=int, default=DEFAULT_K)
    parser.add_argument("--max_iterations", type=int, default=DEFAULT_MAX_ITERATIONS)
    parser.add_argument("--k_min", type=int, default=2)
    parser.add_argument("--k_max", type=int, default=8)
    parser.add_argument("--repeats", type=int, default=5, help="number of seeds for stability")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    os.makedirs(args.out_dir, exist_ok=True)

    supplier = (lambda: FeatureVectorLoader.from_csv(args.data)) if args.data else None
    store = FileStore(args.state_dir) if args.state_dir else InMemoryStore()
    engine = ClusteringEngine(corpus_supplier=supplier, store=store)

    # --- CLUSTERING ---
    print(f"Clustering with k={args.k}...")
    result = engine.cluster(args.k, args.max_iterations)
    print(f"Patients: {result.total_patients} | iterations: {result.iterations} "
          f"| converged: {result.converged} | silhouette: {result.silhouette_score:.3f}")

    summary = result.get_cluster_summary()
    print("\nCluster Summary:")
    print(summary.to_string(index=False))
    summary.to_csv(os.path.join(args.out_dir, "cluster_summary.csv"), index=False)
    result.get_patient_assignments().to_csv(os.path.join(args.out_dir, "assignments.csv"), index=False)

    for cluster in result.clusters:
        print(f"\nCluster {cluster.cluster_id} ({cluster.phenotype.value}, {cluster.size} patients):")
        print(f"  {cluster.phenotype_description}")

    # --- FEATURE IMPORTANCE ---
    importance = pd.DataFrame([asdict(item) for item in engine.get_feature_importance()])
    importance.to_csv(os.path.join(args.out_dir, "feature_importance.csv"), index=False)
    print("\nTop 5 separating features:")
    print(importance.head(5).to_string(index=False))

    # --- ELBOW ---
    print(f"\nTesting k in {list(range(args.k_min, args.k_max + 1))}")
    rows = [asdict(entry) for entry in engine.find_optimal_k(args.k_min, args.k_max)]

    X = engine.get_normalized_population()
    seeds = [DEFAULT_RANDOM_SEED + i * 17 for i in range(args.repeats)]
    for row in rows:
        stab = stability_ari(X, row["k"], seeds)
        row["stability_ari_mean"] = stab["ari_mean"]
        row["stability_ari_std"] = stab["ari_std"]
        print(f"k={row['k']:2d} inertia={row['inertia']:.2f} sil={row['silhouette']:.3f} "
              f"ARI={stab['ari_mean']:.3f}")

    df = pd.DataFrame(rows)
    df.to_csv(os.path.join(args.out_dir, "kmeans_k_metrics.csv"), index=False)
    if len(df) >= 3:
        print(f"\nElbow suggests k={knee_point(df['k'].tolist(), df['inertia'].tolist())}")
    best_sil = df.loc[int(np.argmax(df["silhouette"].values))]
    print(f"Best silhouette at k={int(best_sil['k'])} ({best_sil['silhouette']:.3f})")

    print(f"\nResults saved to {args.out_dir}/")


if __name__ == "__main__":
    main()
