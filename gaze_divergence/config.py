import os


def configure_run(data_file=None, output_dir=None, debug=False):
    """
    Collect the run-level settings for a divergence analysis.

    Parameters:
    -----------
    data_file : str or None
        Long-format CSV with one row per subject, time bin and condition.
    output_dir : str or None
        Directory that receives result tables and figures. Defaults to
        ``results/divergence`` below the current working directory.
    debug : bool
        Print the resolved settings.

    Returns:
    --------
    config : dict
        Run settings keyed by upper-case names.
    """
    if output_dir is None:
        output_dir = os.path.join(os.getcwd(), "results", "divergence")

    if debug:
        print(f"DATA_FILE: {data_file}")
        print(f"OUTPUT_DIR: {output_dir}")

    return {
        "DATA_FILE": data_file,
        "OUTPUT_DIR": output_dir,
        "DEBUG": debug,
    }

# try to get the run settings from the jobscript
data_file = os.environ.get("GAZE_DIVERGENCE_DATA_FILE")
output_dir = os.environ.get("GAZE_DIVERGENCE_OUTPUT_DIR")
debug = os.environ.get("GAZE_DIVERGENCE_DEBUG", "0").lower() in ("1", "true", "yes")

config = configure_run(data_file=data_file, output_dir=output_dir, debug=debug)
# extract the vars from the dict so that they can be accessed directly by importing this module
DATA_FILE = config["DATA_FILE"]
OUTPUT_DIR = config["OUTPUT_DIR"]
DEBUG = config["DEBUG"]
