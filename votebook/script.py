"""Operation scripts: sequences of ledger calls stored as JSON lines.

Each non-blank line of a script that does not start with ``#`` is a JSON
object naming the ledger operation under ``op``, the identity calling it
under ``caller``, and the remaining arguments of the operation by name::

    {"op": "add_candidate", "caller": "admin", "name": "A", "proposal": "x"}
    {"op": "add_voter", "caller": "admin", "identity": "v1"}
    {"op": "start_election", "caller": "admin"}
    {"op": "cast_vote", "caller": "v1", "candidate_id": 1}
    {"op": "end_election", "caller": "admin"}

For ``cast_vote`` and ``delegate_vote``, the caller is the voter acting.
Candidate names and proposals must be strings; voter identities must be
non-null JSON atoms (strings, numbers or booleans).
Scripts can be replayed against a ledger with :func:`replay`.
"""

from __future__ import annotations

import json
import logging
import dataclasses
from typing import Any, Dict, List, Tuple, Iterable, Callable, TextIO

from votebook.errors import ElectionError
from votebook.ledger import ElectionLedger

logger = logging.getLogger(__name__)

# operation name -> (name of the caller parameter, other parameter names)
OPERATIONS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    'add_candidate': ('caller', ('name', 'proposal')),
    'add_voter': ('caller', ('identity', 'name')),
    'start_election': ('caller', ()),
    'delegate_vote': ('delegator', ('delegatee', )),
    'cast_vote': ('voter', ('candidate_id', )),
    'end_election': ('caller', ()),
}
OPTIONAL_ARGUMENTS: Dict[str, Tuple[str, ...]] = {
    'add_voter': ('name', ),
}
IDENTITY_TYPES: Tuple[type, ...] = (str, int, float, bool)
CALLER_TYPES: Tuple[type, ...] = IDENTITY_TYPES + (type(None), )
ARGUMENT_TYPES: Dict[str, Dict[str, Tuple[type, ...]]] = {
    'add_candidate': {'name': (str, ), 'proposal': (str, )},
    'add_voter': {'identity': IDENTITY_TYPES, 'name': (str, type(None))},
    'delegate_vote': {'delegatee': IDENTITY_TYPES},
}


class ScriptParseError(Exception):
    """A script line is not a valid operation.

    :param line_no: Number of the offending line, 1-based.
    :param reason: What is wrong with the line.
    """
    def __init__(self, line_no: int, reason: str):
        self.line_no = line_no
        self.reason = reason
        super().__init__(f'line {line_no}: {reason}')


@dataclasses.dataclass
class Operation:
    """A single ledger call."""
    op: str
    caller: Any
    arguments: Dict[str, Any] = dataclasses.field(default_factory=dict)

    def apply(self, ledger: ElectionLedger) -> Any:
        caller_param, _ = OPERATIONS[self.op]
        return getattr(ledger, self.op)(
            **{caller_param: self.caller}, **self.arguments
        )

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {'op': self.op, 'caller': self.caller}
        out_dict.update(self.arguments)
        return out_dict

    def __str__(self) -> str:
        args = ', '.join(
            [repr(self.caller)] + [repr(v) for v in self.arguments.values()]
        )
        return f'{self.op}({args})'


@dataclasses.dataclass
class ReplayResult:
    """Outcome of replaying a script against a ledger."""
    applied: List[Operation] = dataclasses.field(default_factory=list)
    rejected: List[Tuple[Operation, ElectionError]] = dataclasses.field(
        default_factory=list
    )


def parse_operation(value: Any, line_no: int = 0) -> Operation:
    if not isinstance(value, dict):
        raise ScriptParseError(line_no, f'object expected, got {value!r}')
    fields = dict(value)
    try:
        op = fields.pop('op')
        caller = fields.pop('caller')
    except KeyError as e:
        raise ScriptParseError(line_no, f'missing {e.args[0]!r} key') from e
    if not isinstance(op, str) or op not in OPERATIONS:
        raise ScriptParseError(
            line_no,
            f'unknown operation {op!r}, must be one of '
            + ', '.join(OPERATIONS.keys())
        )
    _, param_names = OPERATIONS[op]
    unknown = set(fields) - set(param_names)
    if unknown:
        raise ScriptParseError(
            line_no, f'unknown arguments for {op}: {sorted(unknown)}'
        )
    missing = (
        set(param_names) - set(fields) - set(OPTIONAL_ARGUMENTS.get(op, ()))
    )
    if missing:
        raise ScriptParseError(
            line_no, f'missing arguments for {op}: {sorted(missing)}'
        )
    if not isinstance(caller, CALLER_TYPES):
        raise ScriptParseError(line_no, f'invalid caller {caller!r}')
    for name, allowed in ARGUMENT_TYPES.get(op, {}).items():
        if name in fields and not isinstance(fields[name], allowed):
            raise ScriptParseError(
                line_no, f'invalid {name} for {op}: {fields[name]!r}'
            )
    return Operation(op, caller, {
        name: fields[name] for name in param_names if name in fields
    })


def load_lines(lines: Iterable[str]) -> List[Operation]:
    operations = []
    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        try:
            value = json.loads(line)
        except json.JSONDecodeError as e:
            raise ScriptParseError(line_no, f'invalid JSON: {e.msg}') from e
        operations.append(parse_operation(value, line_no))
    return operations


def load(file: TextIO) -> List[Operation]:
    """Load operations from a script file."""
    return load_lines(file)


def loads(text: str) -> List[Operation]:
    """Load operations from a script string."""
    return load_lines(iter(text.split('\n')))


def dump_lines(operations: Iterable[Operation]) -> Iterable[str]:
    for operation in operations:
        yield json.dumps(operation.to_dict(), ensure_ascii=False)


def dump(file: TextIO, operations: Iterable[Operation]) -> None:
    for line in dump_lines(operations):
        file.write(line + '\n')


def dumps(operations: Iterable[Operation]) -> str:
    return ''.join(line + '\n' for line in dump_lines(operations))


def replay(ledger: ElectionLedger,
           operations: Iterable[Operation],
           stop_on_error: bool = True,
           on_rejected: Callable[[Operation, ElectionError], Any] = None,
           ) -> ReplayResult:
    """Apply operations to the ledger in order.

    :param ledger: Ledger to apply the operations to.
    :param operations: Operations to apply.
    :param stop_on_error: If True, the first rejected operation re-raises
        its error. Otherwise, rejected operations are recorded and the
        replay continues; a rejection never changes the ledger.
    :param on_rejected: Called with each rejected operation and its error
        when the replay continues past it.
    """
    result = ReplayResult()
    for operation in operations:
        try:
            operation.apply(ledger)
        except ElectionError as e:
            if stop_on_error:
                raise
            logger.info('rejected %s: %s', operation, e)
            result.rejected.append((operation, e))
            if on_rejected is not None:
                on_rejected(operation, e)
        else:
            result.applied.append(operation)
    return result
