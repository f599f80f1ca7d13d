"""Votebook - a ledger for running a single-authority election.

An election is run by one administrator who adds candidates and registers
voters, opens voting and closes it again. In between, each registered voter
may either vote for one candidate or delegate their vote to another
registered voter. Once voting is closed, the candidate with the most votes
wins, ties going to the candidate added first.

The :class:`ElectionLedger` from the :mod:`ledger` module enforces all the
rules of the election and keeps the tally. Every change it makes is
announced by a notification from the :mod:`event` module; rejected calls
raise errors from the :mod:`errors` module and change nothing. Ledgers can
be saved and restored with the :mod:`persist` machinery, and driven by
JSON operation scripts from the :mod:`script` module, which is also what
the commandline tool (``python -m votebook``) does.
"""

from votebook.ledger import ElectionLedger, ElectionState
from votebook.errors import ElectionError
