import logging
import math
import time
from pathlib import Path

import numpy as np

from robustda.association import associate, FusionParams
from robustda.maps import PointSet, random_map, random_pose, simulate_observations
from robustda.ransac import RansacParams
from robustda.viz import render_association, draw_status_text, show_and_save_association

# ============= PARAMETERS ===================
NUM_OBSERVATIONS_TO_SIMUL = 10
RANSAC_MINIMUM_INLIERS = 9          # Min. # of inliers to accept

NORMALIZATION_STD = 0.15            # 1 sigma noise (meters)
MAHALANOBIS_THRESHOLD = 5.0
MINIMUM_RANSAC_ITERS = 100000

NUM_MAP_FEATS = 100
MAP_SIZE_X = 50.0
MAP_SIZE_Y = 25.0

# None: random map. Otherwise an 'ID X Y' landmark file.
MAP_FILE: Path | None = None

NUM_TRIALS = 5
SHOW_WINDOW = False
OUTPUT_DIR: Path | None = Path("output")
SEED = 0
# ============================================


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    rng = np.random.default_rng(SEED)

    if MAP_FILE is not None:
        the_map = PointSet.from_file(MAP_FILE)
    else:
        the_map = random_map(NUM_MAP_FEATS, MAP_SIZE_X, MAP_SIZE_Y, rng)
    print(f"Loaded/generated map with {len(the_map)} landmarks.")

    params = RansacParams(
        noise_std=NORMALIZATION_STD,
        min_inliers=RANSAC_MINIMUM_INLIERS,
        max_inliers=len(the_map) * NUM_OBSERVATIONS_TO_SIMUL,   # test with all data points
        mahalanobis_threshold=MAHALANOBIS_THRESHOLD,
        probability=0.999999,
        min_iterations=MINIMUM_RANSAC_ITERS,
        landmarks=True,
    )
    fusion = FusionParams(
        max_diff_xy=0.01,
        max_diff_phi=math.radians(0.1),
        by_correspondences=True,
    )

    for trial in range(NUM_TRIALS):
        gt_pose = random_pose(MAP_SIZE_X, MAP_SIZE_Y, rng)
        observations, gt_ids = simulate_observations(
            the_map, gt_pose, NUM_OBSERVATIONS_TO_SIMUL, NORMALIZATION_STD, rng)
        print(f"Generated {len(the_map) * NUM_OBSERVATIONS_TO_SIMUL} potential pairings.")

        t0 = time.perf_counter()
        res = associate(the_map.points, observations, params, fusion, rng)
        dt = time.perf_counter() - t0

        print(f"RANSAC time: {dt * 1e3:.1f} ms ({res.report.iterations} iterations)")
        print(f"# of SOG modes: {len(res.belief)}")
        print(f"Best match has {res.num_pairings} features:")
        for map_idx, obs_idx in res.best_inliers.pairs():
            print(f"{map_idx} <-> {obs_idx}")

        print("obs -> map:", " ".join(str(i) for i in res.obs_to_map.tolist()))
        print("ground truth:", " ".join(str(i) for i in gt_ids.tolist()))

        if res.solution is None:
            print("RANSAC found no acceptable hypothesis.\n")
            continue

        print(f"Solution pose: {res.solution.mean}")
        print(f"Ground truth pose: {gt_pose}")
        print(f"nPairings: {res.num_pairings} RMSE = {res.rmse:.6f}\n")

        img = render_association(
            the_map.points, observations, res.solution.mean, res.best_inliers.pairs(), gt_pose=gt_pose)
        img = draw_status_text(img, [
            "Blue: map landmarks | Red: observations | White lines: found correspondences",
            f"Ground truth pose    : {gt_pose}",
            f"RANSAC estimated pose: {res.solution.mean} | RMSE={res.rmse:.4f}",
        ])
        out_path = OUTPUT_DIR / f"association_{trial:02d}.png" if OUTPUT_DIR is not None else None
        show_and_save_association(img, output_path=out_path, show=SHOW_WINDOW)


if __name__ == "__main__":
    main()
