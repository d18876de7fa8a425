import json
import logging
import yaml
from ..models.package_info import Report

logger = logging.getLogger(__name__)

FORMATS = ("json", "yaml")


def report_to_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=4)


def report_to_yaml(report: Report) -> str:
    return yaml.safe_dump(report.to_dict(), sort_keys=False, allow_unicode=True)


def save_report(report: Report, output_path: str, fmt: str = "json"):
    """
    Saves the report to ``output_path``.
    Supports JSON and YAML; optional fields absent from the report are
    omitted in both.
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown output format: {fmt}")

    data = report_to_yaml(report) if fmt == "yaml" else report_to_json(report)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(data)
    logger.info(f"Report saved to {output_path} ({fmt.upper()})")
