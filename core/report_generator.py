"""Report export for skin analysis results: JSON and plain text."""

import json
import logging
from datetime import datetime

from core.recommendations import build_recommendations
from core.utils import SkinAnalysisResult, risk_level_from_percentage

logger = logging.getLogger(__name__)

TOOL_NAME = "LesionScan"
TOOL_VERSION = "1.0.0"


class ReportGenerator:
    """Generates exportable reports from analysis results."""

    def build_record(self, result: SkinAnalysisResult) -> dict:
        """Serializable record for storage or display."""
        return {
            "tool": TOOL_NAME,
            "version": TOOL_VERSION,
            "timestamp": datetime.now().isoformat(),
            "disclaimer": result.disclaimer,
            "input_path": result.input_path,
            **result.to_dict(),
            "recommendations": [r.text for r in build_recommendations(result)],
        }

    def generate_json(self, result: SkinAnalysisResult, output_path: str) -> bool:
        """Generate a JSON export of the analysis."""
        try:
            data = self.build_record(result)
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            return True

        except OSError as e:
            logger.error("Could not write JSON report %s: %s", output_path, e)
            return False

    def generate_txt(self, result: SkinAnalysisResult, output_path: str) -> bool:
        """Generate a plain text report."""
        from i18n import t

        try:
            risk = result.risk
            condition = result.condition
            level = risk_level_from_percentage(risk.cancer_percentage)
            flagged = [
                name for name in ("asymmetry", "border", "color", "diameter", "evolving")
                if getattr(risk.patterns, name)
            ]

            lines = [
                "=" * 60,
                t("report.title"),
                "=" * 60,
                "",
                f"WARNING: {result.disclaimer}",
                "",
                f"Model: {result.model_name}",
                f"Processing Time: {result.processing_time_ms}ms",
                f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
                "",
                "-" * 40,
                t("report.risk").upper(),
                "-" * 40,
                f"  {risk.cancer_percentage}% ({t('risk.' + level.value)})",
                f"  {t('report.patterns')}: {', '.join(flagged) if flagged else t('report.none')}",
                "",
                "-" * 40,
                t("report.condition").upper(),
                "-" * 40,
                f"  {condition.primary_condition.value} ({condition.confidence}%)",
            ]
            for name, pct in condition.all_conditions.items():
                lines.append(f"    {name.value}: {pct}%")

            lines.extend(["", "-" * 40, "RECOMMENDATIONS", "-" * 40])
            for rec in build_recommendations(result):
                lines.append(f"  - {rec.text}")

            lines.extend([
                "",
                "Generated by LesionScan",
            ])

            with open(output_path, "w", encoding="utf-8") as f:
                f.write("\n".join(lines))
            return True

        except OSError as e:
            logger.error("Could not write text report %s: %s", output_path, e)
            return False
