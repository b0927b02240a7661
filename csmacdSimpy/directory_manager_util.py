import os

DEFAULT_OUTPUT_DIR = "sim_output"


def try_to_create_directory(directory_name_path, include_default=True):
    if include_default:
        path = os.path.join(os.getcwd(), DEFAULT_OUTPUT_DIR, directory_name_path)
    else:
        path = os.path.join(os.getcwd(), directory_name_path)
    if not is_path_existing(path):
        os.makedirs(path)
    return path


def is_path_existing(directory_path):
    return os.path.exists(directory_path)


def get_scenario_paths(scenario_path):
    # absolute paths survive the join unchanged
    full_path = os.path.join(os.getcwd(), scenario_path)
    if not is_path_existing(full_path):
        raise FileNotFoundError(full_path)
    if os.path.isfile(full_path):
        return [full_path]
    return [os.path.join(full_path, name) for name in sorted(os.listdir(full_path)) if name.endswith(".json")]
