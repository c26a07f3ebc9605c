"""Machine-learning root analysis.

Finds the libraries, the scripts for each pipeline stage, dataset folders
and notebooks of an ML root, and writes them up as a five-step pipeline
narrative.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from repolens.core.deadline import Deadline, ensure_deadline

from .manifests import has_python_manifest, python_dependencies
from .models import MLModule
from .tree_scanner import get_all_files, is_ignored_dir

logger = logging.getLogger(__name__)

DATA_DIRS = ["data", "datasets", "dataset", "raw_data", "data/raw", "inputs"]

TRAIN_PATTERNS = ("train", "training", "fit", "train_model")
INFER_PATTERNS = ("inference", "infer", "predict", "serve")
PREPROCESS_PATTERNS = ("preprocess", "preprocessing", "transform", "prepare_data", "load_data")
EVAL_PATTERNS = ("eval", "evaluate", "evaluation", "metrics")

# Normalized dependency substring -> display label, in report order
ML_LIBRARIES: list[tuple[tuple[str, ...], str]] = [
    (("tensorflow", "tf_nightly"), "TensorFlow"),
    (("torch", "pytorch"), "PyTorch"),
    (("scikit_learn", "sklearn"), "Scikit-learn"),
    (("keras",), "Keras"),
    (("xgboost",), "XGBoost"),
    (("lightgbm",), "LightGBM"),
    (("transformers",), "Hugging Face Transformers"),
    (("pandas",), "Pandas"),
    (("numpy",), "NumPy"),
    (("matplotlib",), "Matplotlib"),
    (("opencv", "cv2"), "OpenCV"),
]

NOTEBOOK_WALK_LIMIT = 100
NOTEBOOK_LIST_LIMIT = 50
NOTEBOOK_NARRATIVE_LIMIT = 10
SCRIPT_LIMIT = 80
STAGE_NARRATIVE_LIMIT = 5


def detect_libs(root: Path) -> list[str]:
    deps = python_dependencies(root)
    libs: list[str] = []
    for needles, label in ML_LIBRARIES:
        for dep in deps:
            if label == "Keras" and "tensorflow" in dep:
                continue
            if any(needle in dep for needle in needles):
                libs.append(label)
                break
    return libs


def find_notebooks(root: Path, limit: int = NOTEBOOK_WALK_LIMIT, deadline: Deadline | None = None) -> list[str]:
    notebooks = get_all_files(root, extensions={".ipynb"}, deadline=deadline)
    return notebooks[:limit]


def scripts_matching(py_files: list[str], patterns: tuple[str, ...], limit: int = SCRIPT_LIMIT) -> list[str]:
    """Python files whose file name contains any of ``patterns``."""
    matched = [
        rel for rel in py_files
        if any(p in rel.rsplit("/", 1)[-1].lower() for p in patterns)
    ]
    return matched[:limit]


def find_dataset_folders(root: Path) -> list[str]:
    folders = [d for d in DATA_DIRS if (root / d).is_dir()]
    try:
        with os.scandir(root) as entries:
            names = sorted(
                entry.name for entry in entries
                if entry.is_dir(follow_symlinks=False) and not is_ignored_dir(entry.name)
            )
    except OSError as e:
        logger.debug("Could not list %s: %s", root, e)
        names = []
    for name in names:
        lower = name.lower()
        if ("data" in lower or "dataset" in lower) and name not in folders:
            folders.append(name)
    return folders


def has_top_level_python(root: Path) -> bool:
    try:
        with os.scandir(root) as entries:
            return any(e.is_file() and e.name.endswith(".py") for e in entries)
    except OSError:
        return False


def _stage(items: list[str], empty: str = "scripts not detected") -> str:
    return ", ".join(items[:STAGE_NARRATIVE_LIMIT]) if items else empty


def pipeline_explanation(module: MLModule) -> str:
    lines = [
        "ML pipeline (typical flow):",
        f"1. Data: {', '.join(module.dataset_folders) if module.dataset_folders else 'not detected'}",
        f"2. Preprocessing: {_stage(module.preprocessing_scripts)}",
        f"3. Training: {_stage(module.training_scripts)}",
        f"4. Evaluation: {_stage(module.evaluation_scripts)}",
        f"5. Inference: {_stage(module.inference_scripts)}",
    ]
    if module.notebooks:
        shown = ", ".join(module.notebooks[:NOTEBOOK_NARRATIVE_LIMIT])
        more = "..." if len(module.notebooks) > NOTEBOOK_NARRATIVE_LIMIT else ""
        lines.append(f"Notebooks: {shown}{more}")
    return "\n".join(lines) + "\n"


def analyze_ml(root_path: Path, root: str = ".", deadline: Deadline | None = None) -> MLModule:
    """Analyze one ML root.

    Args:
        root_path: Absolute directory of the root.
        root: The root's path relative to the project, as reported.
        deadline: Shared analysis deadline.
    """
    deadline = ensure_deadline(deadline)
    if not root_path.is_dir():
        return MLModule(root=root)

    notebooks = find_notebooks(root_path, deadline=deadline)
    py_files = get_all_files(root_path, extensions={".py"}, deadline=deadline)
    deadline.check("ml analysis")

    module = MLModule(
        root=root,
        has_python=has_python_manifest(root_path) or bool(notebooks) or has_top_level_python(root_path),
        has_notebooks=bool(notebooks),
        libs=detect_libs(root_path),
        training_scripts=scripts_matching(py_files, TRAIN_PATTERNS),
        inference_scripts=scripts_matching(py_files, INFER_PATTERNS),
        preprocessing_scripts=scripts_matching(py_files, PREPROCESS_PATTERNS),
        evaluation_scripts=scripts_matching(py_files, EVAL_PATTERNS),
        dataset_folders=find_dataset_folders(root_path),
        notebooks=notebooks[:NOTEBOOK_LIST_LIMIT],
    )
    module.pipeline_explanation = pipeline_explanation(module)
    logger.debug("ML %s: libs=%s, %d notebooks", root, module.libs, len(notebooks))
    return module
