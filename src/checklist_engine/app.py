"""Command-line entry point for the checklist engine.

Subcommands:
  taxonomy       Standard metadata plus category/subcategory lists
  checklist      Role and context specific checklist (optionally exported)
  search         Free-text requirement search
  questionnaire  Score yes/no answers into a recommended profile

Results are printed as JSON on stdout; logs go to stderr.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .output.writer import ChecklistWriter
from .scoring.engine import PROFILES, ScoringEngine, get_profile
from .service import ChecklistService, QuestionnaireService, validate_answers
from .standards.loader import TaxonomyLoadError, load_standard
from .util.config import Config
from .util.io import read_json
from .util.log import setup_logging
from .util.types import ApplicationType, DeveloperDiscipline, TechnologyTag, UserRole

logger = logging.getLogger(__name__)

STANDARDS = ('asvs', 'spvs')


def _choices(vocabulary) -> List[str]:
    return [member.value for member in vocabulary]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='checklist-engine',
        description='Role and context specific security checklists from ASVS and SPVS',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  checklist-engine taxonomy --standard spvs
  checklist-engine checklist --level L2 --app-type web --role developer --category V2 --export
  checklist-engine search --standard spvs --category V3 --query secret
  checklist-engine questionnaire --standard spvs --yes managesPipelineSecrets --yes deploysToProduction
        """
    )
    parser.add_argument('--env-file', help='Path to .env file (default: ./.env or repository root)')
    parser.add_argument('--log-level', help='Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    taxonomy = subparsers.add_parser('taxonomy', help='Show standard metadata and categories')
    taxonomy.add_argument('--standard', choices=STANDARDS, default='asvs')

    checklist = subparsers.add_parser('checklist', help='Build a checklist for one profile')
    checklist.add_argument('--standard', choices=STANDARDS, default='asvs')
    checklist.add_argument('--level', required=True, help='Maximum level: L1, L2 or L3')
    checklist.add_argument('--app-type', required=True, choices=_choices(ApplicationType))
    checklist.add_argument('--role', required=True, choices=_choices(UserRole))
    checklist.add_argument('--discipline', choices=_choices(DeveloperDiscipline))
    checklist.add_argument('--technology', choices=_choices(TechnologyTag) + ['all'])
    checklist.add_argument('--category', action='append', help='Category code (repeatable or comma-separated)')
    checklist.add_argument('--export', action='store_true', help='Also write CSV/JSON (and Excel if enabled)')
    checklist.add_argument('--excel', action='store_true', help='Write an Excel workbook when exporting')

    search = subparsers.add_parser('search', help='Search requirements by text and filters')
    search.add_argument('--standard', choices=STANDARDS, default='asvs')
    search.add_argument('--query', help='Case-insensitive text to look for')
    search.add_argument('--level', action='append', help='Level filter, e.g. L1 (repeatable or comma-separated)')
    search.add_argument('--category', action='append', help='Category code (repeatable or comma-separated)')
    search.add_argument('--subcategory', action='append', help='Subcategory code (repeatable or comma-separated)')

    questionnaire = subparsers.add_parser('questionnaire', help='Score questionnaire answers')
    questionnaire.add_argument('--standard', choices=sorted(PROFILES), default='asvs')
    questionnaire.add_argument('--answers', help='JSON file mapping question id to true/false')
    questionnaire.add_argument('--yes', action='append', default=[], metavar='ID',
                               help='Question answered yes (repeatable)')
    questionnaire.add_argument('--role', choices=_choices(UserRole))
    questionnaire.add_argument('--user', default='cli', help='User id the answers are saved under')
    questionnaire.add_argument('--list', action='store_true', help='List the questions instead of scoring')

    return parser


def _split(values: Optional[List[str]]) -> List[str]:
    """Flatten repeatable, comma-separated arguments."""
    result: List[str] = []
    for value in values or []:
        result.extend(part for part in value.split(',') if part.strip())
    return result


def _emit(payload: Any) -> None:
    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def run_taxonomy(args, config: Config) -> Dict[str, Any]:
    return ChecklistService(load_standard(args.standard, config)).taxonomy()


def run_checklist(args, config: Config) -> Dict[str, Any]:
    service = ChecklistService(load_standard(args.standard, config))
    controls, filters = service.select_checklist(
        args.level, args.app_type, args.role,
        discipline=args.discipline,
        technology=args.technology,
        categories=_split(args.category),
    )
    result = {
        'metadata': service.metadata(filters, len(controls)),
        'tasks': [control.to_dict() for control in controls],
    }

    if args.export:
        name = f"{args.standard}-{filters['level']}-{filters['applicationType']}-{filters['role']}"
        writer = ChecklistWriter(
            name=name,
            out_dir=config.out_dir,
            enable_excel=config.enable_excel or args.excel,
        )
        written = writer.write_all(controls, result['metadata'])
        result['exported'] = [str(path) for path in written]
    return result


def run_search(args, config: Config) -> Dict[str, Any]:
    service = ChecklistService(load_standard(args.standard, config))
    return service.search(
        search=args.query,
        levels=_split(args.level),
        categories=_split(args.category),
        subcategories=_split(args.subcategory),
    )


def load_answers(path: Optional[str], yes_ids: List[str]) -> Dict[str, bool]:
    """Merge an answers file with --yes flags. Raises ValueError on a bad file."""
    answers: Dict[str, bool] = {}
    if path:
        data = read_json(Path(path))
        if not isinstance(data, dict):
            raise ValueError(f"Answers file {path} must contain a JSON object")
        answers.update(validate_answers(data))
    for question_id in yes_ids:
        answers[question_id.strip()] = True
    return answers


def run_questionnaire(args, config: Config) -> Any:
    profile = get_profile(args.standard)
    if args.list:
        return [question.to_dict() for question in profile.questions]

    engine = ScoringEngine(profile, index=load_standard(profile.name, config))
    service = QuestionnaireService(engine)
    record = service.submit(args.user, load_answers(args.answers, args.yes), role=args.role)
    return record.to_dict()


COMMANDS = {
    'taxonomy': run_taxonomy,
    'checklist': run_checklist,
    'search': run_search,
    'questionnaire': run_questionnaire,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = Config(env_file=Path(args.env_file) if args.env_file else None)
        setup_logging(log_file=config.log_file, level=args.log_level or config.log_level)

        _emit(COMMANDS[args.command](args, config))
        return 0

    except TaxonomyLoadError as e:
        logger.error(f"Cannot load standard: {e}")
        print(f"✗ Cannot load standard: {e}", file=sys.stderr)
        return 2

    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\n✗ Interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
