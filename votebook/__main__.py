"""A commandline tool for replaying an election from an operation script.

Runs every operation of the script against a fresh ledger, then shows the
notifications emitted, the current tally and, if the election has ended,
the winner.
"""

import argparse
import io
import json
import logging
import sys
from typing import Optional

import votebook.script
from votebook.errors import ElectionError
from votebook.event import event_to_dict
from votebook.ledger import ElectionLedger, ElectionState

argparser = argparse.ArgumentParser(
    prog='votebook',
    description=__doc__,
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
argparser.add_argument(
    '-i', '--input-file',
    type=argparse.FileType('r', encoding='utf8'),
    help='file to load the operation script from',
)
argparser.add_argument(
    '-I', '--use-stdin',
    action='store_true',
    help='load the operation script from standard input',
)
argparser.add_argument(
    '-a', '--admin',
    default='admin',
    help='identity of the election administrator',
)
argparser.add_argument(
    '-k', '--keep-going',
    action='store_true',
    help='report rejected operations and continue instead of stopping',
)
argparser.add_argument(
    '-o', '--snapshot-output',
    type=argparse.FileType('w', encoding='utf8'),
    help='write a JSON snapshot of the final ledger state to this file',
)
argparser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='show all ledger log messages',
)
argparser.add_argument(
    '-q', '--quiet',
    action='store_true',
    help='do not show any ledger log messages',
)


def main(input_file: io.TextIOBase,
         use_stdin: bool = False,
         admin: str = 'admin',
         keep_going: bool = False,
         snapshot_output: Optional[io.TextIOBase] = None,
         verbose: bool = False,
         quiet: bool = False,
         ) -> int:
    logging.basicConfig(
        level=(
            logging.DEBUG if verbose
            else (logging.WARNING if quiet else logging.INFO)
        ),
        format='%(levelname)-10s %(message)s'
    )
    if use_stdin:
        input_file = sys.stdin
    operations = votebook.script.load(input_file)
    ledger = ElectionLedger(admin, listeners=[show_event])
    exit_code = 0
    try:
        result = votebook.script.replay(
            ledger, operations,
            stop_on_error=not keep_going,
            on_rejected=show_rejected,
        )
    except ElectionError as e:
        print(f'Operation rejected, stopping: {e}')
        exit_code = 1
    else:
        if result.rejected:
            exit_code = 1
    show_summary(ledger)
    if snapshot_output is not None:
        json.dump(ledger.to_dict(), snapshot_output, indent=2)
    return exit_code


def show_event(event) -> None:
    fields = event_to_dict(event)
    name = fields.pop('event')
    args = ', '.join(f'{key}={val!r}' for key, val in fields.items())
    print(f'{name}({args})')


def show_rejected(operation: votebook.script.Operation,
                  error: ElectionError,
                  ) -> None:
    print(f'Rejected {operation}: {type(error).__name__}: {error}')


def show_summary(ledger: ElectionLedger) -> None:
    """Show the tally and, once the election is over, its winner."""
    print()
    print(f'Election is {ledger.state.value}')
    n_voted, n_delegated, n_registered = ledger.get_turnout()
    print(f'{n_voted} of {n_registered} registered voters voted,'
          f' {n_delegated} delegated')
    candidates = ledger.get_candidates()
    if not candidates:
        print('No candidates')
        return
    n_just_chars = max(len(str(cand.name)) for cand in candidates)
    for cand in candidates:
        print(str(cand.id).rjust(3), ' ',
              str(cand.name).ljust(n_just_chars), ' ', cand.votes)
    if ledger.state is ElectionState.ENDED:
        winner = ledger.get_winner()
        print()
        print(f'Winner: {winner.name} ({winner.votes} votes)')


if __name__ == '__main__':
    args = argparser.parse_args()
    if not args.input_file and not args.use_stdin:
        argparser.print_usage()
    else:
        sys.exit(main(**vars(args)))
