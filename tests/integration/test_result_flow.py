import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from roster import create_app


def _post(client, path, payload, status=201):
    res = client.post(path, json=payload)
    assert res.status_code == status, res.get_json()
    return res.get_json()


def test_roster_to_results_end_to_end(memory_store):
    app = create_app()
    app.config.update({"TESTING": True})

    with app.test_client() as client:
        team = _post(client, "/api/teams", {"code": "SHK", "type": "club", "nameLong": "Sharks", "nameShort": "Sharks"})["id"]
        other = _post(client, "/api/teams", {"code": "RAY", "type": "club", "nameLong": "Rays", "nameShort": "Rays"})["id"]
        season = _post(client, "/api/seasons", {"team": team, "nameLong": "Summer 2025", "nameShort": "S25",
                                                "startDate": "2025-05-01", "endDate": "2025-08-31"})["id"]
        person = _post(client, "/api/people", {"firstName": "Ava", "lastName": "Lopez", "gender": "F",
                                               "birthday": "2012-06-30"})["id"]
        mate = _post(client, "/api/people", {"firstName": "Ben", "lastName": "Okafor", "gender": "M",
                                             "birthday": "2012-01-01"})["id"]
        athlete = _post(client, "/api/athletes", {"person": person, "season": season, "team": team})["id"]
        teammate = _post(client, "/api/athletes", {"person": mate, "season": season, "team": other})["id"]
        free = _post(client, "/api/events", {"code": "50FR", "nameShort": "50 Free", "distance": 50})["id"]
        relay = _post(client, "/api/events", {"code": "200FRR", "nameShort": "200 FR", "distance": 200})["id"]
        meet = _post(client, "/api/meets", {"nameShort": "Opener", "date": "2025-06-30", "season": season,
                                            "eventOrder": [free, relay]})["id"]

        result = _post(client, "/api/individualResults", {"meet": meet, "event": free, "athlete": athlete,
                                                          "result": 35.4, "dq": False})
        stored = memory_store["individualResults"][result["id"]]
        assert (stored["team"], stored["season"], stored["age"]) == (team, season, 13)

        # Athlete changes team; the existing result keeps its values on edit
        _post(client, f"/api/athletes/{athlete}", {"team": other}, status=200)
        _post(client, f"/api/individualResults/{result['id']}", {"meet": meet, "event": free, "athlete": athlete,
                                                                 "result": 34.9, "dq": True}, status=200)
        stored = memory_store["individualResults"][result["id"]]
        assert stored["team"] == team
        assert stored["result"] == 34.9

        relay_res = _post(client, "/api/relayResults", {"meet": meet, "event": relay,
                                                        "athletes": [teammate, athlete, "", ""], "result": 150.2})
        stored = memory_store["relayResults"][relay_res["id"]]
        assert stored["athletes"] == [teammate, athlete]
        assert (stored["team"], stored["season"]) == (other, season)

        page = client.get("/relay-results").get_data(as_text=True)
        assert "Ben Okafor, Ava Lopez" in page
        page = client.get("/meets").get_data(as_text=True)
        assert "50 Free, 200 FR" in page
