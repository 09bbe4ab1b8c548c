import argparse
import sys

from blob_processing.simulation import run_syncom
from syncom.angularfield import build_angular_field, load_angular_statistics
from syncom.metadatahandler import load_syncom_params

version = 1.0
"""
Builds a synthetic SynCOM image sequence.

The parameter set (meta_files/syncom/<id>.json) fixes the grid, the number of
blobs and the seed. The angular statistics file supplies velocity and period
per position angle, unless the parameter set uses the sinusoidal profile.
Frames, the full cube and the blob table are written as FITS files.
"""


def parse_arguments():
    parser = argparse.ArgumentParser(
        description="Synthesize a SynCOM image sequence from moving Gaussian blobs."
    )
    parser.add_argument(
        "-p",
        "--params",
        type=str,
        default="default",
        help="Id of the SynCOM parameter set in meta_files/syncom/",
    )
    parser.add_argument(
        "-f",
        "--field",
        type=str,
        default=None,
        help="Angular statistics file (.sav, .npz or .csv) with velocity and period/frequency per angle",
    )
    parser.add_argument(
        "--velocity-key",
        type=str,
        default="velocity",
        help="Name of the velocity variable in the statistics file",
    )
    parser.add_argument(
        "--period-key",
        type=str,
        default="period",
        help="Name of the period variable in the statistics file",
    )
    parser.add_argument(
        "--frequency-key",
        type=str,
        default="frequency",
        help="Name of the frequency variable, used if there is no period",
    )
    parser.add_argument(
        "-o",
        "--out",
        type=str,
        default=None,
        help="Output folder for FITS files (defaults to the parameter set's output_folder)",
    )
    parser.add_argument(
        "--no-frames",
        action="store_true",
        help="Only write the cube and blob table, not one FITS file per frame",
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
    print(f"Running SynCOM {version}")

    params = load_syncom_params(args.params, args.meta)
    if params is None:
        print(
            f"No parameter set '{args.params}' in {args.meta}/syncom. Run create_default_syncom_params.py first."
        )
        sys.exit(1)

    try:
        if args.field is not None:
            velocity, period, frequency = load_angular_statistics(
                args.field,
                velocity_key=args.velocity_key,
                period_key=args.period_key,
                frequency_key=args.frequency_key,
            )
            field = build_angular_field(
                params, velocity=velocity, period=period, frequency=frequency
            )
        else:
            field = build_angular_field(params)
        print(field.to_string())

        meta, cube, blobs = run_syncom(
            params,
            field,
            output_folder=args.out,
            save_frames=not args.no_frames,
            meta_folder=args.meta,
        )
    except Exception as e:
        print(f"Error when running SynCOM. Full error {repr(e)}")
        sys.exit(1)

    print(
        f"Successfully created run {meta.id}: {cube.shape[2]} frames, cube in {meta.cube_file}"
    )


if __name__ == "__main__":
    main()
