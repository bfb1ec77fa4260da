"""
Tests for team membership and invite codes.
"""
import pytest
from splitledger.core.exceptions import NotFound, ValidationError
from splitledger.services import team_service
from splitledger.services.team_service import TEAM_CODE_ALPHABET, TEAM_CODE_LENGTH


def test_new_team_gets_invite_code(team):
    assert len(team.code) == TEAM_CODE_LENGTH
    assert all(ch in TEAM_CODE_ALPHABET for ch in team.code)


def test_invite_codes_are_unique(db, members, clock):
    ana = members[0]
    codes = {team_service.create_team(db, f"Group {i}", ana.id, clock=clock).code for i in range(20)}
    assert len(codes) == 20


def test_join_team_by_code(db, team, make_user, cache):
    dee = make_user("Dee")
    team_service.list_members(db, team.id, cache=cache)

    joined = team_service.join_team(db, f"  {team.code.lower()} ", dee.id, cache=cache)
    assert joined.id == team.id
    assert dee.id in team_service.get_active_member_ids(db, team.id)
    assert "Dee" in [m["name"] for m in team_service.list_members(db, team.id, cache=cache)]


def test_join_team_rejects_unknown_code_and_existing_member(db, team, members):
    with pytest.raises(NotFound):
        team_service.join_team(db, "NOPE!!", members[0].id)
    with pytest.raises(ValidationError):
        team_service.join_team(db, team.code, members[1].id)


def test_rejoin_after_leaving(db, team, members, clock):
    cai = members[2]
    team_service.remove_member(db, team.id, cai.id, clock=clock)
    assert cai.id not in team_service.get_active_member_ids(db, team.id)

    team_service.join_team(db, team.code, cai.id)
    assert cai.id in team_service.get_active_member_ids(db, team.id)


def test_deleted_team_code_no_longer_joins(db, team, members, make_user, clock):
    team_service.delete_team(db, team.id, members[0].id, clock=clock)
    with pytest.raises(NotFound):
        team_service.join_team(db, team.code, make_user("Eve").id)
