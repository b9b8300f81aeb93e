#!/usr/bin/env python3
"""
Command line front end for SSVC triage.

Wires the decision tree loader, vector codec, calculator and workflow
state machine together from a YAML configuration:
1. Load: read the configured decision tree (file or URL)
2. Decide: decode vectors or evaluate analyst choices
3. Gate: answer workflow transition questions for a set of roles
4. Report: summarise a batch of vectors as Markdown

Usage:
    python run_triage.py [--config config.yaml] steps
    python run_triage.py decode 'SSVCv2/E:A/A:Y/T:T/M:H/D:C/2024-05-02T14:23:11Z/'
    python run_triage.py evaluate Exploitation=A Automatable=Y 'Technical Impact=T' ...
    python run_triage.py transitions --role editor --from read
    python run_triage.py check --role reviewer --from review --to archived
    python run_triage.py report vectors.txt
"""
import sys
import json
import yaml
import logging
import argparse
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from decisioning import OutcomeExplainer, SSVCCalculator, SSVCObject, VectorCodec
from ingestion import TreeLoader
from observability import TriageMetrics, TriageReporter
from workflow import WorkflowStateMachine, WorkflowStateTransition

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


class TriageApp:
    """
    Holds the components configured for one process.

    The decision tree is loaded once at construction; loading another
    tree means building another TriageApp.
    """

    REQUIRED_KEYS = ["decision_tree", "workflow"]

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize components from configuration.

        Args:
            config_path: Path to YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(self.config_path) as f:
            self.config = yaml.safe_load(f) or {}

        for key in self.REQUIRED_KEYS:
            if key not in self.config:
                raise ValueError(f"Missing required config key: {key}")

        self.loader = TreeLoader(self.config["decision_tree"] or {})
        self.tree = self.loader.load()
        self.codec = VectorCodec(self.tree)
        self.calculator = SSVCCalculator(self.tree, self.codec)
        self.explainer = OutcomeExplainer(self.tree)

        workflow_config = self.config["workflow"] or {}
        self.state_machine = WorkflowStateMachine(workflow_config.get("role_aliases"))

        reports_config = self.config.get("reports") or {}
        self.output_dir = Path(reports_config.get("output_dir", "output"))
        self.reporter = TriageReporter()

        self.metrics = TriageMetrics(
            run_id=datetime.utcnow().strftime("run-%Y%m%d-%H%M%S"),
            started_at=datetime.utcnow(),
            tree_title=self.tree.title,
            tree_version=self.tree.version,
        )

        logger.info(f"Triage initialized with config: {config_path}")

    def decode(self, vectors: List[str]) -> List[SSVCObject]:
        """Decode vectors, recording each result in the run metrics."""
        results = []
        for vector in vectors:
            result = self.codec.decode(vector)
            self.metrics.record_decode(result.label)
            if not result.is_resolved:
                logger.warning(f"Unresolved vector: {vector}")
            results.append(result)
        return results

    def evaluate(self, selections: Dict[str, str]) -> Dict[str, Any]:
        """Evaluate analyst choices; returns the outcome with an explanation."""
        evaluation = self.calculator.evaluate(selections)
        result = evaluation.as_ssvc_object()
        self.metrics.record_decode(result.label)
        return {
            "vector": result.vector,
            "label": result.label,
            "color": result.color,
            "explanation": self.explainer.explain(result.vector),
        }

    def check_transition(self, roles: List[str], from_state: str, to_state: str) -> Dict[str, Any]:
        description = self.state_machine.describe_transition(roles, from_state, to_state)
        self.metrics.record_transition_check(from_state, to_state, description["is_allowed"])
        return description

    def allowed_transitions(self, roles: List[str], from_state: str) -> Tuple[WorkflowStateTransition, ...]:
        return self.state_machine.list_allowed_transitions(roles, from_state)

    def report(self, vectors_file: Path) -> Path:
        """
        Decode every vector in a file (one per line) and save a Markdown report.

        Blank lines and lines starting with '#' are skipped.
        """
        lines = Path(vectors_file).read_text(encoding="utf-8").splitlines()
        stripped = (line.strip() for line in lines)
        vectors = [line for line in stripped if line and not line.startswith("#")]
        logger.info(f"Decoding {len(vectors)} vectors from {vectors_file}")

        results = self.decode(vectors)
        self.metrics.completed_at = datetime.utcnow()
        report = self.reporter.generate_report(self.metrics, results)
        return self.reporter.save_report(report, self.output_dir)


def parse_selection(text: str) -> Tuple[str, str]:
    """Split a 'Decision label=option' argument."""
    label, sep, option = text.partition("=")
    if not sep or not label.strip():
        raise argparse.ArgumentTypeError(f"Expected LABEL=OPTION, got: {text}")
    return label.strip(), option.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SSVC decision tree and workflow triage"
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override logging level from config"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("steps", help="List the main decisions of the tree")

    decode = subparsers.add_parser("decode", help="Decode one or more vectors")
    decode.add_argument("vectors", nargs="+")

    evaluate = subparsers.add_parser("evaluate", help="Evaluate analyst choices")
    evaluate.add_argument("selections", nargs="+", type=parse_selection, metavar="LABEL=OPTION")

    transitions = subparsers.add_parser("transitions", help="List allowed workflow transitions")
    transitions.add_argument("--role", action="append", required=True, dest="roles")
    transitions.add_argument("--from", required=True, dest="from_state")

    check = subparsers.add_parser("check", help="Check a single workflow transition")
    check.add_argument("--role", action="append", required=True, dest="roles")
    check.add_argument("--from", required=True, dest="from_state")
    check.add_argument("--to", required=True, dest="to_state")

    report = subparsers.add_parser("report", help="Decode a file of vectors into a Markdown report")
    report.add_argument("vectors_file", type=Path)

    return parser


def configure_logging(config_path: str, override: str = None):
    level = override
    if level is None and Path(config_path).exists():
        with open(config_path) as f:
            level = ((yaml.safe_load(f) or {}).get("logging") or {}).get("level")
    level = (level or "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level: {level}")
    logging.basicConfig(level=level, format=LOG_FORMAT)


def main(argv: List[str] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.config, args.log_level)
        app = TriageApp(config_path=args.config)

        if args.command == "steps":
            for index, label in enumerate(app.tree.steps, start=1):
                print(f"{index:2}. {label}")
            return 0

        if args.command == "decode":
            for result in app.decode(args.vectors):
                print(json.dumps({"vector": result.vector, "label": result.label, "color": result.color}))
            return 0

        if args.command == "evaluate":
            print(json.dumps(app.evaluate(dict(args.selections)), indent=2))
            return 0

        if args.command == "transitions":
            for transition in app.allowed_transitions(args.roles, args.from_state):
                print(f"{transition.from_state} -> {transition.to_state}")
            return 0

        if args.command == "check":
            description = app.check_transition(args.roles, args.from_state, args.to_state)
            print(json.dumps(description, indent=2))
            return 0 if description["is_allowed"] else 2

        if args.command == "report":
            path = app.report(args.vectors_file)
            print(f"Report: {path}")
            return 0

    except Exception as e:
        logger.error(f"Triage failed: {e}")
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
