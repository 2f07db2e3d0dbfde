# scripts/main.py

from __future__ import annotations

import logging
from pathlib import Path
from dataclasses import asdict, replace

from rube_sims.core import SimConfig, World, run_simulation
from rube_sims.render.frame_export import export_frames_at
from rube_sims.render.video import render_video
from rube_sims.utils.cli import build_parser
from rube_sims.utils.io import load_state_file, save_state_file, unique_path
from rube_sims.utils.random import seed_all

PROJECT_ROOT = Path(__file__).parent.parent


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    base = SimConfig.from_preset(args.preset) if args.preset is not None else None
    sim_config = SimConfig.from_args(args, base=base)

    steps_per_frame = max(1, -(-args.physics_rate_request // sim_config.fps))  # ceil division
    physics_rate = steps_per_frame * sim_config.fps
    sim_config = replace(sim_config, dt=1 / physics_rate)

    seed_all(sim_config.seed)

    # 1. Build the world, fresh or from a saved state
    world = World.from_config(sim_config)
    if args.load_state is not None:
        world.load_state(load_state_file(args.load_state))
        print(f"Restored state at t={world.t:.3f}s with {len(world.balls)} balls.")
    else:
        world.init(sim_config.width, sim_config.height)
    print("Chamber order: " + ", ".join(world.chamber_order))

    # 2. Output paths
    exp_dir = PROJECT_ROOT / args.outdir / args.exp_name
    exp_dir.mkdir(exist_ok=True, parents=True)

    n_frames = int(sim_config.duration * sim_config.fps)
    dt = sim_config.dt

    # 3. Either render live or run and record
    if args.render:
        video_path = unique_path(exp_dir / "video.mp4")
        render_video(
            world,
            output_path=video_path,
            n_frames=n_frames,
            dt=dt,
            fps=sim_config.fps,
            steps_per_frame=steps_per_frame,
            preview=args.preview,
        )
        print(f"Video written to {video_path}")
    else:
        recording = run_simulation(world, n_frames * steps_per_frame, dt, log_interval=int(physics_rate))
        recording.meta = {
            "sim_config": asdict(sim_config),
            "seed": sim_config.seed,
            "chamber_order": list(world.chamber_order),
            "engine_version": "0.1.0",
        }
        recording_path = unique_path(exp_dir / "recording.pkl.xz")
        recording.save(recording_path)
        print(f"Simulation completed. Recording written to {recording_path}")

    if args.export_frame:
        for path in export_frames_at(world, args.export_frame, exp_dir, dt):
            print(f"Frame written to {path}")

    state_path = Path(args.save_state) if args.save_state is not None else exp_dir / "state.pkl.xz"
    save_state_file(world.save_state(), state_path)
    print(f"State written to {state_path}")


if __name__ == "__main__":
    main()
