import argparse
import os
import sys

from syncom.fitsread import fits_read_cube
from syncom.helper import ensure_path_exists, write_result_to_csv
from syncom.metadatahandler import load_run_metadata, load_velocity_params
from velocity_analysis.velocitymap import compute_velocity_map, summarize_velocity_map


def parse_arguments():
    parser = argparse.ArgumentParser(
        description="Cross-correlation velocities from a SynCOM (or observed) image cube."
    )
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "-c",
        "--cube",
        type=str,
        help="FITS cube with axes (angle, radius, time)",
    )
    group.add_argument(
        "-r",
        "--run",
        type=str,
        help="Id of a SynCOM run in meta_files/runs/, its cube is used",
    )
    parser.add_argument(
        "-v",
        "--velocity",
        type=str,
        default="default",
        help="Id of the velocity parameter set in meta_files/velocity/",
    )
    parser.add_argument(
        "--step",
        type=int,
        default=1,
        help="Analyse every n-th angle",
    )
    parser.add_argument(
        "-o",
        "--out",
        type=str,
        default="files",
        help="Folder for the velocity CSV",
    )
    parser.add_argument(
        "-m",
        "--meta",
        type=str,
        default="meta_files",
        help="Metadata folder",
    )

    args = parser.parse_args()
    return args


def main():
    args = parse_arguments()
    assert args.step > 0, "Angle step must be positive"

    vp = load_velocity_params(args.velocity, args.meta)
    if vp is None:
        print(f"No velocity parameter set '{args.velocity}' in {args.meta}/velocity")
        sys.exit(1)

    if args.run is not None:
        run = load_run_metadata(args.run, args.meta)
        if run is None:
            sys.exit(1)
        cube_file = run.cube_file
        handle = run.id
    else:
        cube_file = args.cube
        handle = os.path.splitext(os.path.basename(cube_file))[0]

    try:
        cube, _ = fits_read_cube(cube_file)
        angles = range(0, cube.shape[0], args.step)
        print(
            f"{handle}: correlating {len(angles)} angles between {vp.r1_rsun} and {vp.r2_rsun} Rsun"
        )
        df = compute_velocity_map(cube, vp, angles=angles)
    except Exception as e:
        print(f"Error when computing velocities. Full error {repr(e)}")
        sys.exit(1)

    ensure_path_exists(args.out)
    filename = os.path.join(args.out, f"velocity_{handle}_{vp.id}.csv")
    df.to_csv(filename, index=False)

    summary = summarize_velocity_map(df)
    summary = {"cube": cube_file, "velocity_id": vp.id, **summary}
    write_result_to_csv(summary, os.path.join(args.out, "velocity_runs.csv"))

    print(
        f"Wrote {filename}. {summary['finite']} / {summary['angles']} finite velocities, median {summary['median_velocity_kms']:.1f} km/s"
    )


if __name__ == "__main__":
    main()
