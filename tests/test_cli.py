import plistlib
import zipfile

import pytest

from provision_toolkit import cli
from provision_toolkit.errors import NoCompatibleProvisionFound


def test_find_prints_selected_profile_and_writes_entitlements(
    monkeypatch, tmp_path, write_provision, capsys
) -> None:
    path = write_provision(tmp_path, "wild.mobileprovision", name="Wildcard", app_id="ABCDE12345.*")
    out = tmp_path / "game.entitlements"
    captured: dict = {}

    def fake_select(config, resolver=None, *, sync=True):
        captured["config"] = config
        captured["sync"] = sync
        return path

    monkeypatch.setattr(cli, "select_provision", fake_select)

    rc = cli.main([
        "find", "-b", "com.foo.Game", "--library", str(tmp_path),
        "--distribution", "--no-sync", "-e", str(out),
    ])

    assert rc == 0
    assert captured["sync"] is False
    assert captured["config"].for_distribution is True
    assert captured["config"].provision_directory == str(tmp_path)
    assert capsys.readouterr().out.strip().splitlines()[-1] == path
    ent = plistlib.loads(out.read_bytes())
    assert ent["application-identifier"] == "ABCDE12345.com.foo.Game"


def test_find_reports_missing_profile(monkeypatch, tmp_path) -> None:
    def fake_select(config, resolver=None, *, sync=True):
        raise NoCompatibleProvisionFound(config.bundle_id, config.for_distribution)

    monkeypatch.setattr(cli, "select_provision", fake_select)

    with pytest.raises(SystemExit) as e:
        cli.main(["find", "-b", "com.foo.Game", "--library", str(tmp_path)])
    assert "No compatible provisioning profile found for com.foo.Game" in str(e.value)
    assert "Hint:" in str(e.value)


def test_inspect_prints_profile_fields(tmp_path, write_provision, capsys) -> None:
    path = write_provision(tmp_path, "dev.mobileprovision", name="Game Dev",
                           app_id="ABCDE12345.com.foo.Game", devices=("DEV1",), debug=True)

    assert cli.main(["inspect", path]) == 0
    out = capsys.readouterr().out
    assert "Name     : Game Dev" in out
    assert "AppID    : ABCDE12345.com.foo.Game" in out
    assert "Kind     : development" in out
    assert "  - DEV1" in out


def test_inspect_reads_ipa(tmp_path, provision_bytes, capsys) -> None:
    ipa = tmp_path / "Game.ipa"
    with zipfile.ZipFile(ipa, "w") as zf:
        zf.writestr("Payload/Game.app/embedded.mobileprovision", provision_bytes(name="In IPA"))

    assert cli.main(["inspect", str(ipa)]) == 0
    assert "Name     : In IPA" in capsys.readouterr().out


def test_inspect_reports_parse_error(tmp_path) -> None:
    bad = tmp_path / "bad.mobileprovision"
    bad.write_bytes(b"nothing to see")

    with pytest.raises(SystemExit) as e:
        cli.main(["inspect", str(bad)])
    assert "failed to parse" in str(e.value)


def test_inspect_missing_file(tmp_path) -> None:
    with pytest.raises(SystemExit) as e:
        cli.main(["inspect", str(tmp_path / "missing.mobileprovision")])
    assert "file not found" in str(e.value)


def test_entitlements_to_stdout_and_file(tmp_path, write_provision, capsys) -> None:
    path = write_provision(tmp_path, "wild.mobileprovision", app_id="ABCDE12345.*")

    assert cli.main(["entitlements", path, "-b", "com.foo.Game"]) == 0
    ent = plistlib.loads(capsys.readouterr().out.encode())
    assert ent["application-identifier"] == "ABCDE12345.com.foo.Game"

    out = tmp_path / "out.plist"
    assert cli.main(["entitlements", path, "-b", "com.bar.App", "-o", str(out)]) == 0
    assert plistlib.loads(out.read_bytes())["application-identifier"] == "ABCDE12345.com.bar.App"
