from syncom.metadatahandler import save_syncom_params, save_velocity_params
from syncom.syncommetadata import SyncomParameters, VelocityParameters
import argparse


def parse_arguments():
    parser = argparse.ArgumentParser(
        description="Write the default SynCOM and velocity parameter files to meta_files/"
    )
    parser.add_argument(
        "-m",
        "--meta",
        type=str,
        default="meta_files",
        help="Folder the parameter files are written to",
    )

    args = parser.parse_args()
    return args


def create_default_params(folder: str = "meta_files"):
    print("Creating default parameter sets")

    default = SyncomParameters(id="default", seed=1)
    save_syncom_params(default, folder)

    # Data-free profile, useful when no angular statistics file is at hand
    sine = SyncomParameters(
        id="sinusoidal",
        use_sinusoidal_profile=True,
        sine_base_kms=350.0,
        sine_amplitude_kms=150.0,
        seed=1,
    )
    save_syncom_params(sine, folder)

    small = SyncomParameters(
        id="small",
        n_blobs=50,
        nx=360,
        ny=128,
        time_t=40,
        angular_resolution=3600,
        use_sinusoidal_profile=True,
        seed=7,
        version="small",
    )
    save_syncom_params(small, folder)

    accelerating = SyncomParameters(
        id="accelerating",
        initial_radius_rsun=0.5,
        acceleration=0.02,
        recurrence=(2, 4, 6),
        seed=1,
        version="acc",
    )
    save_syncom_params(accelerating, folder)

    vp = VelocityParameters(
        id="default",
        r1_rsun=2.0,
        r2_rsun=4.0,
        max_lag=40,
        poly_order=2,
        detrend_time_scale=None,
    )
    save_velocity_params(vp, folder)

    vp_detrend = VelocityParameters(
        id="detrend",
        r1_rsun=2.0,
        r2_rsun=4.0,
        max_lag=40,
        poly_order=2,
        detrend_time_scale=12,
    )
    save_velocity_params(vp_detrend, folder)


def main():
    args = parse_arguments()
    create_default_params(args.meta)
    print(
        f"Successfully created the default parameters. You can inspect them in {args.meta}/syncom and {args.meta}/velocity"
    )


if __name__ == "__main__":
    main()
