
import sys
import os
import io
import json

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import votebook.__main__
from votebook.ledger import ElectionLedger, ElectionState

DATA_DIR = os.path.join(os.path.dirname(__file__), 'data')


def run_main(name, **kwargs):
    with open(os.path.join(DATA_DIR, name), encoding='utf8') as infile:
        return votebook.__main__.main(infile, quiet=True, **kwargs)


def test_main_tie(capsys):
    snapshot = io.StringIO()
    assert run_main('tie.jsonl', snapshot_output=snapshot) == 0
    out = capsys.readouterr().out
    assert "CandidateAdded(id=1, name='A', proposal='More parks')" in out
    assert "VoteCast(voter='v3', candidate_id=2)" in out
    assert 'Election is ended' in out
    assert '2 of 3 registered voters voted, 1 delegated' in out
    assert 'Winner: A (1 votes)' in out
    restored = ElectionLedger.from_dict(json.loads(snapshot.getvalue()))
    assert restored.state is ElectionState.ENDED
    assert restored.get_tally() == {1: 1, 2: 1}


def test_main_stops_on_rejection(capsys):
    assert run_main('rejected.jsonl') == 1
    out = capsys.readouterr().out
    assert 'Operation rejected, stopping: voter' in out
    assert 'Election is ongoing' in out
    assert 'Winner' not in out


def test_main_keep_going(capsys):
    assert run_main('rejected.jsonl', keep_going=True) == 1
    out = capsys.readouterr().out
    assert "Rejected cast_vote('v1', 1): AlreadyVoted" in out
    assert "Rejected add_voter('admin', 'v2'): InvalidState" in out
    assert 'Winner: A (1 votes)' in out


def test_main_other_admin(capsys):
    assert run_main('tie.jsonl', admin='root') == 1
    out = capsys.readouterr().out
    assert 'Operation rejected, stopping' in out
    assert 'No candidates' in out


def test_argparser():
    args = votebook.__main__.argparser.parse_args(['-I', '-k', '-a', 'root'])
    assert args.use_stdin
    assert args.keep_going
    assert args.admin == 'root'
    assert args.input_file is None


def test_main_numeric_identities(capsys):
    script = io.StringIO('\n'.join([
        '{"op": "add_candidate", "caller": 1, "name": "A", "proposal": ""}',
        '{"op": "add_voter", "caller": 1, "identity": 2}',
        '{"op": "start_election", "caller": 1}',
        '{"op": "cast_vote", "caller": 2, "candidate_id": 1}',
    ]))
    assert votebook.__main__.main(script, admin=1, quiet=True) == 0
    out = capsys.readouterr().out
    assert '1 of 1 registered voters voted' in out
