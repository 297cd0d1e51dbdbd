"""CSV, JSON and optional Excel checklist export.

Primary output is a CSV file (one row per control, analysis-ready).
Excel is optional and generated from the same rows if enabled.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..scoring.engine import Recommendation
from ..standards.models import Control
from ..util.io import ensure_dir, write_csv, write_json
from ..util.time import date_str, now_utc, timestamp_str

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    'id', 'level', 'category_id', 'category', 'section_id', 'section',
    'description', 'roles', 'application_types', 'disciplines', 'technologies',
    'nist', 'owasp_risk', 'cwe', 'cwe_description',
]


def control_row(control: Control) -> Dict[str, Any]:
    """Flatten a control into one CSV/Excel row. Tag sets become ';'-joined text."""
    return {
        'id': control.id,
        'level': control.level.label,
        'category_id': control.category_id,
        'category': control.category_name,
        'section_id': control.section_id,
        'section': control.section_name,
        'description': control.description,
        'roles': ";".join(sorted(control.roles)),
        'application_types': ";".join(sorted(control.application_types)),
        'disciplines': ";".join(sorted(control.disciplines)),
        'technologies': ";".join(sorted(control.technologies)),
        'nist': control.nist,
        'owasp_risk': control.owasp_risk,
        'cwe': control.cwe,
        'cwe_description': control.cwe_description,
    }


class ChecklistWriter:
    """Writes a checklist to disk in CSV/JSON and optional Excel format.

    Output structure:
      out/<name>/<date>/<timestamp>/
        checklist.csv       # One row per control, canonical order
        checklist.json      # Metadata, filters, recommendation and controls
        checklist.xlsx      # Optional Excel workbook
    """

    def __init__(self, name: str, out_dir: str = "out", enable_excel: bool = False, run_dir: Path = None):
        """Initialize writer with output directory.

        Args:
            name: Checklist name used for the directory (e.g. 'asvs-L2-web-developer')
            out_dir: Base output directory (default: 'out')
            enable_excel: Whether to generate an Excel workbook (default: False)
            run_dir: Explicit directory to use (overrides auto-creation)
        """
        self.name = name
        self.enable_excel = enable_excel

        if run_dir:
            self.run_dir = Path(run_dir)
        else:
            self.run_dir = Path(out_dir) / name / date_str() / timestamp_str()
        ensure_dir(self.run_dir)

        logger.info(f"Output directory: {self.run_dir}")

    def write_all(self,
                  controls: Sequence[Control],
                  metadata: Dict[str, Any],
                  recommendation: Optional[Recommendation] = None) -> List[Path]:
        """Write all output files and return their paths."""
        rows = [control_row(control) for control in controls]
        written = [
            self._write_csv(rows),
            self._write_json(controls, metadata, recommendation),
        ]

        if self.enable_excel:
            workbook = self._write_excel(rows, metadata, recommendation)
            if workbook is not None:
                written.append(workbook)

        logger.info(f"Wrote {len(rows)} controls to {self.run_dir}")
        return written

    def _write_csv(self, rows: List[Dict[str, Any]]) -> Path:
        output_file = self.run_dir / "checklist.csv"
        write_csv(output_file, rows, fieldnames=CSV_FIELDS)
        logger.info(f"Wrote {len(rows)} rows to {output_file.name}")
        return output_file

    def _write_json(self, controls: Sequence[Control], metadata: Dict[str, Any],
                    recommendation: Optional[Recommendation]) -> Path:
        document = {
            'generated_at': now_utc().isoformat(),
            'metadata': metadata,
            'tasks': [control.to_dict() for control in controls],
        }
        if recommendation is not None:
            document['recommendation'] = recommendation.to_dict()

        output_file = self.run_dir / "checklist.json"
        write_json(output_file, document)
        logger.info(f"Wrote metadata and controls to {output_file.name}")
        return output_file

    def _write_excel(self, rows: List[Dict[str, Any]], metadata: Dict[str, Any],
                     recommendation: Optional[Recommendation]) -> Optional[Path]:
        """Write Excel workbook (optional).

        Controls sheet mirrors the CSV; Summary sheet lists metadata and the
        recommendation, one metric per row.
        """
        import pandas as pd

        output_file = self.run_dir / "checklist.xlsx"
        summary = {key: value for key, value in metadata.items() if not isinstance(value, (dict, list))}
        for key, value in (metadata.get('filters') or {}).items():
            summary[f"filter.{key}"] = ", ".join(value) if isinstance(value, list) else value
        if recommendation is not None:
            for key, value in recommendation.to_dict().items():
                summary[f"recommendation.{key}"] = "\n".join(value) if isinstance(value, list) else value

        try:
            with pd.ExcelWriter(output_file, engine='openpyxl') as writer:
                pd.DataFrame(rows, columns=CSV_FIELDS).to_excel(writer, sheet_name='Controls', index=False)
                pd.DataFrame({
                    'Metric': list(summary.keys()),
                    'Value': list(summary.values()),
                }).to_excel(writer, sheet_name='Summary', index=False)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to write Excel output: {e}")
            return None

        logger.info(f"Wrote Excel workbook to {output_file.name}")
        return output_file

    def get_output_dir(self) -> Path:
        """Return the output directory path."""
        return self.run_dir
