import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent))

from passivetree import DataError, load, validate_structure


def main(path: str = "data/skill_tree.json"):
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger("TreeVerification")

    try:
        logger.info(f"Loading passive tree from {path}...")
        graph = load(Path(path))
    except DataError as e:
        logger.error(f"VERIFICATION FAILED: {e}")
        sys.exit(1)

    report = validate_structure(graph)

    logger.info(f"Total nodes: {report.total_nodes}")
    for node_type, count in sorted(report.type_distribution.items()):
        logger.info(f"  {node_type}: {count}")
    logger.info(f"Keystones: {', '.join(report.keystones) or 'none'}")

    for node_id in report.orphaned:
        logger.warning(f"Orphaned node: {node_id}")
    for a, b in report.invalid_edges:
        logger.warning(f"Invalid edge: {a} -> {b}")
    for node_id, req_id in report.dangling_requirements:
        logger.warning(f"Node {node_id} requires missing node {req_id}")
    for cycle in report.cycles:
        logger.warning(f"Prerequisite cycle: {' -> '.join(cycle)}")
    for node_id in report.unreachable:
        logger.warning(f"Unreachable from start: {node_id}")

    if not report.is_valid:
        logger.error(f"VERIFICATION FAILED: {'; '.join(report.issues)}")
        sys.exit(1)

    logger.info("VERIFICATION SUCCESSFUL: Passive tree is structurally sound.")


if __name__ == "__main__":
    main(*sys.argv[1:2])
