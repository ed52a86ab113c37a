"""
src/examblock/main.py

Command line entry point for building, scheduling and finalising an exam block.
"""

import argparse
import logging
import sys

from . import report
from . import utils
from .data_loader import ExamDataLoader, load_exam_config
from .errors import FormatError
from .exam_block import ExamBlockModel
from .exam_exporter import ExamExporter


def banner(text):
    print("=" * 70)
    print(text.center(70))
    print("=" * 70)


def _open(model, path):
    """Loads `path` into the model, printing the failure reason."""
    try:
        result = model.load_from_file(path)
    except FormatError as exc:
        print(f"❌ {path} is not a valid exam block file: {exc.message}")
        return False
    if not result:
        print(f"❌ Could not open {path}: {result.message}")
        return False
    print(f"✓ Loaded {path}")
    return True


def _save(model, path):
    result = model.save_to_file(path)
    if not result:
        print(f"❌ Could not save {path}: {result.message}")
        return False
    print(f"✓ Saved {path}")
    return True


def cmd_seed(args):
    config = load_exam_config(args.data_dir)
    model = ExamBlockModel(config['title'], float(config['version']))

    print("\n📂 Loading data...")
    counts = ExamDataLoader(model.document, args.data_dir).load_all_data()
    for kind, count in counts.items():
        print(f"✓ Loaded {count} {kind}")
    if not counts['students']:
        print(f"⚠ Warning: no students found in {args.data_dir}")
    return 0 if _save(model, args.output) else 1


def cmd_show(args):
    model = ExamBlockModel()
    if not _open(model, args.file):
        return 1
    print(model.summary_report())
    return 0


def cmd_schedule(args):
    model = ExamBlockModel()
    if not _open(model, args.file):
        return 1
    venue = model.venues.find(args.venue)
    if venue is None:
        print(f"❌ No venue named {args.venue}")
        return 1
    exams = model.exams.all()
    if not 1 <= args.exam <= len(exams):
        print(f"❌ Exam number must be between 1 and {len(exams)}")
        return 1
    exam = exams[args.exam - 1]

    result = model.schedule_exam(venue, exam, args.aara)
    if not result:
        print(f"❌ {exam.short_title} not scheduled: {result.reason}")
        return 1
    print(f"✓ {exam.short_title} scheduled in session {result.session}")
    return 0 if _save(model, args.file) else 1


def cmd_finalise(args):
    model = ExamBlockModel()
    if not _open(model, args.file):
        return 1

    print("\n🪑 Allocating desks...")
    result = model.finalise_exam_block()
    for session_id, desks in result.allocations.items():
        print(f"  ✓ {session_id}: {len(desks)} desks filled")
    for session_id, pairs in result.unseated.items():
        print(f"  ⚠ {session_id}: {len(pairs)} students without a desk")

    if not _save(model, args.file):
        return 1
    try:
        path = report.save_report(result.report, args.report_dir)
    except OSError as exc:
        print(f"❌ Could not write report to {args.report_dir}: {exc}")
        return 1
    print(f"✓ Report written to {path}")
    if args.excel:
        print("\n📊 Exporting to Excel...")
        try:
            exported = ExamExporter(model.document).export(args.excel)
        except OSError as exc:
            print(f"❌ Could not export {args.excel}: {exc}")
            return 1
        print(f"  ✓ Exported: {exported}")
    return 0


def build_parser():
    p = argparse.ArgumentParser(prog="examblock",
                                description="Year 12 exam block scheduling and desk allocation")
    p.add_argument('-v', '--verbose', action='store_true', help='Show informational log messages')
    sub = p.add_subparsers(dest='command', required=True)

    seed = sub.add_parser('seed', help='Build an exam block file from CSV seed data')
    seed.add_argument('data_dir', help='Directory holding subjects.csv, students.csv, ...')
    seed.add_argument('output', help=f'Exam block file to write ({utils.FILE_EXTENSION})')
    seed.set_defaults(func=cmd_seed)

    show = sub.add_parser('show', help='Print a summary of an exam block file')
    show.add_argument('file')
    show.set_defaults(func=cmd_show)

    schedule = sub.add_parser('schedule', help='Schedule one exam into a venue')
    schedule.add_argument('file')
    schedule.add_argument('--venue', required=True, help='Venue id, e.g. V1')
    schedule.add_argument('--exam', required=True, type=int, help='Exam number as listed in the file')
    schedule.add_argument('--aara', action='store_true', help='Schedule the AARA students')
    schedule.set_defaults(func=cmd_schedule)

    finalise = sub.add_parser('finalise', help='Allocate desks and write the report')
    finalise.add_argument('file')
    finalise.add_argument('--report-dir', default=utils.DEFAULT_CONFIG['report_dir'])
    finalise.add_argument('--excel', default=None, help='Also export allocations to this .xlsx file')
    finalise.set_defaults(func=cmd_finalise)
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    banner("EXAM BLOCK")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
