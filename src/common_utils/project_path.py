from pathlib import Path

# Do not import any other modules here, PROJECT_DIR is fundamental information
utils_dir = Path(__file__).parent
# src directory is the parent directory of common_utils
src_dir = utils_dir.parent
CURRENT_DIR = src_dir
PROJECT_DIR = src_dir.parent
