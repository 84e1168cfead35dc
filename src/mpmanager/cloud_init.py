"""
Discovery of cloud-init templates.

Local templates are `#cloud-config` YAML files sitting next to the executable
or in the working directory. A remote repository, named by the
`github-cloud-init-repo` key of a `.config` file (or CLOUD_INIT_REPO in the
YAML config), is shallow-cloned and all of its YAML files are offered too.
"""
import logging
import os
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

CONFIG_REPO_KEY = "github-cloud-init-repo"
CLOUD_CONFIG_HEADER = "#cloud-config"
YAML_SUFFIXES = (".yml", ".yaml")


class RepoNotConfiguredError(LookupError):
    """No github-cloud-init-repo entry was found."""


@dataclass(frozen=True)
class TemplateOption:
    label: str
    path: str


def normalize_path(path: str) -> str:
    """Returns an absolute, cleaned path, or "" for an empty one."""
    if not path:
        return ""
    return os.path.abspath(os.path.normpath(path))


def app_search_dirs_from(exe_path: str, cwd: str) -> list[str]:
    """Directory of the executable first, then the working directory, without duplicates."""
    dirs = []
    if exe_path:
        dirs.append(os.path.dirname(exe_path))
    if cwd:
        dirs.append(cwd)

    deduped = []
    for directory in dirs:
        normalized = normalize_path(directory)
        if normalized and normalized not in deduped:
            deduped.append(normalized)
    return deduped


def app_search_dirs() -> list[str]:
    return app_search_dirs_from(sys.argv[0] if sys.argv and sys.argv[0] else "", os.getcwd())


def is_yaml_file_name(name: str) -> bool:
    return name.lower().endswith(YAML_SUFFIXES)


def has_cloud_config_header(file_path: str) -> bool:
    try:
        with open(file_path, encoding="utf-8", errors="replace") as f:
            first_line = f.readline()
    except OSError:
        return False
    return first_line.strip() == CLOUD_CONFIG_HEADER


def scan_cloud_init_template_options(search_dirs: list[str]) -> list[TemplateOption]:
    """
    Lists `#cloud-config` YAML files found directly inside the search directories.

    A file seen twice is listed once. Two different files with the same name
    get the directory appended to the label.

    Raises:
        OSError: when nothing was found and a directory could not be read
    """
    seen_paths = set()
    seen_labels: dict[str, str] = {}
    options = []
    first_error = None

    for directory in search_dirs:
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            if first_error is None:
                first_error = OSError(f"failed to read directory {directory}: {e}")
            continue

        for entry in entries:
            if entry.is_dir() or not is_yaml_file_name(entry.name):
                continue
            file_path = normalize_path(os.path.join(directory, entry.name))
            if not file_path or not has_cloud_config_header(file_path):
                continue
            if file_path in seen_paths:
                continue

            label = entry.name
            existing = seen_labels.get(label)
            if existing is not None and existing != file_path:
                label = f"{entry.name} ({os.path.basename(directory)})"
                if label in seen_labels:
                    label = f"{entry.name} ({directory})"

            seen_paths.add(file_path)
            seen_labels[label] = file_path
            options.append(TemplateOption(label=label, path=file_path))

    if not options and first_error is not None:
        raise first_error
    return options


def read_config_github_repo_from_file(config_path: str) -> str:
    """
    Returns the repository URL of the `github-cloud-init-repo` entry.

    `key=value`, `key: value` and `key value` are accepted; a leading `@`
    on the value is dropped.

    Raises:
        FileNotFoundError: the file does not exist
        RepoNotConfiguredError: the file has no usable entry
    """
    with open(config_path, encoding="utf-8") as f:
        for raw_line in f:
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            idx = line.find(CONFIG_REPO_KEY)
            if idx < 0:
                continue
            rest = line[idx + len(CONFIG_REPO_KEY):].strip()
            if rest[:1] in ("=", ":"):
                rest = rest[1:].strip()
            rest = rest.removeprefix("@")
            if rest:
                return rest
    raise RepoNotConfiguredError(f"{CONFIG_REPO_KEY} not found in {config_path}")


def read_config_github_repo_from_dirs(search_dirs: list[str]) -> str:
    """First `.config` holding the key wins; missing files and keys are skipped."""
    first_error = None
    for directory in search_dirs:
        config_path = os.path.join(directory, ".config")
        logging.info(f"reading config: {config_path}")
        try:
            repo_url = read_config_github_repo_from_file(config_path)
        except (FileNotFoundError, RepoNotConfiguredError):
            continue
        except OSError as e:
            if first_error is None:
                first_error = e
            continue
        logging.info(f"config repo url: {repo_url}")
        return repo_url

    if first_error is not None:
        raise first_error
    raise RepoNotConfiguredError(f"{CONFIG_REPO_KEY} not found in .config")


def read_config_github_repo(config: dict | None = None) -> str:
    """CLOUD_INIT_REPO from the YAML config, else the `.config` files."""
    if config and config.get("CLOUD_INIT_REPO"):
        return str(config["CLOUD_INIT_REPO"])
    return read_config_github_repo_from_dirs(app_search_dirs())


def clone_repo_and_scan_yamls(repo_url: str) -> tuple[list[TemplateOption], str]:
    """
    Shallow-clones the repository into a temporary directory and lists every
    YAML file in it, no header required.

    Returns:
        tuple: (options, temp_dir). The caller removes temp_dir when done.

    Raises:
        ValueError: empty URL
        RuntimeError: the temp dir could not be created or the clone failed
    """
    if not repo_url:
        raise ValueError("empty repo URL")

    try:
        tmp_dir = tempfile.mkdtemp(prefix="mpmanager-cloudinit-")
    except OSError as e:
        logging.error(f"cannot create temp dir for repo clone: {e}")
        raise RuntimeError(f"cannot create temp dir: {e}") from e
    logging.info(f"cloning repo {repo_url} into {tmp_dir}")
    try:
        subprocess.run(
            ["git", "clone", "--depth", "1", repo_url, tmp_dir],
            check=True,
            capture_output=True,
            text=True,
        )
    except (subprocess.CalledProcessError, OSError) as e:
        stderr = getattr(e, "stderr", "") or ""
        logging.error(f"git clone failed: {e}; {stderr.strip()}")
        shutil.rmtree(tmp_dir, ignore_errors=True)
        raise RuntimeError(f"git clone failed: {e}; {stderr}") from e

    options = []
    root = Path(tmp_dir)
    for path in sorted(root.rglob("*")):
        if ".git" in path.relative_to(root).parts:
            continue
        if path.is_file() and is_yaml_file_name(path.name):
            rel = path.relative_to(root).as_posix()
            options.append(TemplateOption(label=f"repo/{rel}", path=str(path)))
    logging.info(f"found {len(options)} yaml templates in repo")
    return options, tmp_dir


def get_all_cloud_init_template_options(config: dict | None = None) -> tuple[list[TemplateOption], list[str]]:
    """
    Local templates followed by those of the configured repository.

    Returns:
        tuple: (options, temp dirs to clean up afterwards)
    """
    options: list[TemplateOption] = []
    cleanup_dirs: list[str] = []

    try:
        local = scan_cloud_init_template_options(app_search_dirs())
        options.extend(local)
        logging.info(f"found {len(local)} local cloud-init templates")
    except OSError as e:
        logging.warning(f"local template scan error: {e}")

    try:
        repo_url = read_config_github_repo(config)
    except (RepoNotConfiguredError, OSError) as e:
        logging.info(f"no cloud-init repository configured: {e}")
        return options, cleanup_dirs

    try:
        repo_options, tmp_dir = clone_repo_and_scan_yamls(repo_url)
    except (RuntimeError, ValueError, OSError) as e:
        logging.error(f"repo scan error: {e}")
        return options, cleanup_dirs

    options.extend(repo_options)
    cleanup_dirs.append(tmp_dir)
    logging.info(f"aggregated {len(options)} total templates (local+repo)")
    return options, cleanup_dirs


def cleanup_temp_dirs(dirs: list[str]) -> None:
    """Removes the temporary directories created by repository clones."""
    for directory in dirs:
        if not directory:
            continue
        logging.info(f"cleanup temp dir: {directory}")
        shutil.rmtree(directory, ignore_errors=True)
