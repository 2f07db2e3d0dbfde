import argparse
import json


def build_parser():
    # Simulation settings default to None so that only values actually given
    # override the preset (see SimConfig.from_args).
    parser = argparse.ArgumentParser(description='Chamber grid ball simulation')
    parser.add_argument('--preset', type=str, default=None, metavar='PATH',
                        help='YAML preset with simulation settings (may use include:)')
    parser.add_argument('--exp_name', type=str, default='', metavar='N',
                        help='experiment_name')
    parser.add_argument('--seed', type=int, default=None, metavar='N',
                        help='random seed (default: preset value, else non-reproducible)')
    parser.add_argument('--width', type=float, default=None, metavar='PX',
                        help='canvas width in pixels (default: 1920)')
    parser.add_argument('--height', type=float, default=None, metavar='PX',
                        help='canvas height in pixels (default: 1080)')
    parser.add_argument('--fps', type=int, default=None, metavar='N',
                        help='frame rate for rendering (default: 60)')
    parser.add_argument('--duration', type=float, default=None, metavar='N',
                        help='duration of the simulation in seconds (default: 10.0)')
    parser.add_argument('--physics_rate_request', type=int, default=60, metavar='N',
                        help='requested physics simulation rate in Hz (default: 60)')
    parser.add_argument('--gravity', type=float, default=None, metavar='N',
                        help='downward acceleration in px/s^2 (default: 400)')
    parser.add_argument('--ball_radius', type=float, default=None, metavar='PX',
                        help='radius of spawned balls (default: 10)')
    parser.add_argument('--max_balls', type=int, default=None, metavar='N',
                        help='population cap (default: 50)')
    parser.add_argument('--initial_balls', type=int, default=None, metavar='N',
                        help='balls spawned at start-up (default: 3)')
    parser.add_argument('--spawn_interval', type=float, default=None, metavar='S',
                        help='seconds between timed spawns (default: 0.5)')
    parser.add_argument('--chambers', type=json.loads, default=None, metavar='JSON',
                        help='JSON list of chamber kinds in grid order, '
                             'e.g. \'["pegs", "funnel", "pong"]\' (default: all, shuffled)')
    parser.add_argument('--load_state', type=str, default=None, metavar='PATH',
                        help='restore a saved state file before running')
    parser.add_argument('--save_state', type=str, default=None, metavar='PATH',
                        help='write the final state to this file (default: <exp_dir>/state.pkl.xz)')
    parser.add_argument('--outdir', type=str, default='results', metavar='N',
                        help='directory to save outputs (default: results)')
    parser.add_argument('--render', action='store_true',
                        help='render an MP4 of the run (needs ffmpeg)')
    parser.add_argument('--export_frame', type=float, action='append', default=None, metavar='T',
                        help='export a PNG at simulation time T (repeatable)')
    parser.add_argument('--preview', action='store_true',
                        help='whether to use preview settings for faster rendering')
    return parser
