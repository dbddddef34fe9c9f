"""Tests for the config-file extractor."""

import pytest

from penguin_memo.transcripts.config_files import (
    ConfigScanState,
    detect_type,
    parse_config_transcript,
    resolve_path,
    step_config,
)


def _shape(entries):
    return [(e.path, e.content, e.type) for e in entries]


class TestParseConfigTranscript:
    def test_pwd_then_relative_cat(self):
        raw = "$ pwd\n/etc/nginx\n$ cat nginx.conf\nuser nginx;\nworker_processes 1;"
        entries = parse_config_transcript(raw)
        assert _shape(entries) == [("/etc/nginx/nginx.conf", "user nginx;\nworker_processes 1;", "nginx")]

    def test_bare_pwd_and_cat_lines(self):
        raw = "pwd\n/srv/app\ncat docker-compose.yml\nservices:\n  web:\n    image: nginx"
        entries = parse_config_transcript(raw)
        assert entries[0].path == "/srv/app/docker-compose.yml"
        assert entries[0].content == "services:\n  web:\n    image: nginx"
        assert entries[0].type == "docker"

    def test_prompt_directory_resolves_relative_path(self):
        raw = "[root@web /etc/nginx]$ cat nginx.conf\nuser nginx;\n[root@web /etc/nginx]$ ls"
        assert _shape(parse_config_transcript(raw)) == [("/etc/nginx/nginx.conf", "user nginx;", "nginx")]

    def test_absolute_path(self):
        entries = parse_config_transcript("cat /etc/ssh/sshd_config\nPort 22\nPermitRootLogin no")
        assert _shape(entries) == [("/etc/ssh/sshd_config", "Port 22\nPermitRootLogin no", "ssh")]

    def test_relative_path_without_directory_is_kept(self):
        entries = parse_config_transcript("cat app.env\nKEY=1")
        assert _shape(entries) == [("app.env", "KEY=1", "env")]

    def test_home_prompt_directory_is_not_used(self):
        entries = parse_config_transcript("[root@web ~]$ cat .bashrc\nalias ll='ls -l'")
        assert entries[0].path == ".bashrc"

    def test_multiple_files_in_order(self):
        raw = "cat a.yml\nx: 1\ncat b.json\n{}"
        assert _shape(parse_config_transcript(raw)) == [("a.yml", "x: 1", "yaml"), ("b.json", "{}", "json")]

    def test_other_prompt_command_ends_capture(self):
        raw = "$ cat deploy.sh\necho hi\n$ systemctl restart app\nActive: active (running)"
        assert _shape(parse_config_transcript(raw)) == [("deploy.sh", "echo hi", "shell")]

    def test_comment_lines_stay_in_content(self):
        raw = "cat /etc/nginx/nginx.conf\n# main config\nuser nginx;\n"
        assert parse_config_transcript(raw)[0].content == "# main config\nuser nginx;"

    def test_context_line_flushes_and_sets_directory(self):
        raw = "cat a.sh\necho 1\n[root@web /opt/app][main]\n> cat run.py\nprint(1)"
        assert _shape(parse_config_transcript(raw)) == [
            ("a.sh", "echo 1", "shell"),
            ("/opt/app/run.py", "print(1)", "python"),
        ]

    def test_form_feed_in_body_is_kept(self):
        entries = parse_config_transcript("cat /etc/app.conf\nsection_a\x0csection_b\nkey=value\n")
        assert entries[0].content == "section_a\x0csection_b\nkey=value"

    def test_crlf_body(self):
        entries = parse_config_transcript("cat /etc/hosts\r\n127.0.0.1 localhost\r\n::1 localhost\r\n")
        assert entries[0].content == "127.0.0.1 localhost\n::1 localhost"

    def test_pwd_consumes_exactly_one_line(self):
        raw = "pwd\n/srv\n/var\ncat x.py\nprint(1)"
        assert parse_config_transcript(raw)[0].path == "/srv/x.py"

    def test_non_absolute_pwd_output_is_ignored(self):
        raw = "cd /opt\npwd\nnot-a-path\ncat x.py\nprint(1)"
        assert parse_config_transcript(raw)[0].path == "x.py"


class TestPartialMatches:
    def test_cat_without_argument_is_skipped(self):
        assert parse_config_transcript("$ cat\nfoo") == []

    def test_cat_without_body_is_skipped(self):
        assert parse_config_transcript("$ cat empty.conf\n$ ls") == []

    def test_cat_with_blank_body_is_skipped(self):
        assert parse_config_transcript("$ cat empty.conf\n\n   \n") == []

    def test_empty_input(self):
        assert parse_config_transcript("") == []

    def test_no_cat_commands(self):
        assert parse_config_transcript("[a@h /]$ ls\nfoo\nbar") == []

    def test_garbage_input(self):
        assert isinstance(parse_config_transcript("\x00\xff\n> \n[[[@@@\n$"), list)

    def test_reparse_is_structurally_identical(self):
        raw = "pwd\n/etc\ncat hosts\n127.0.0.1 localhost"
        assert _shape(parse_config_transcript(raw)) == _shape(parse_config_transcript(raw))


class TestStepConfig:
    def test_pwd_arms_directory_capture(self):
        state, emitted = step_config(ConfigScanState(), "pwd")
        assert emitted is None
        assert state.expecting_pwd_output

        state, _ = step_config(state, "/etc")
        assert state.directory == "/etc"
        assert not state.expecting_pwd_output

    def test_second_cat_emits_first_file(self):
        state, _ = step_config(ConfigScanState(), "cat a.conf")
        state, _ = step_config(state, "x=1")
        state, emitted = step_config(state, "cat b.conf")
        assert emitted.path == "a.conf"
        assert state.current_file == "b.conf"


class TestResolvePath:
    def test_joins_relative(self):
        assert resolve_path("nginx.conf", "/etc/nginx") == "/etc/nginx/nginx.conf"

    def test_trailing_slash(self):
        assert resolve_path("nginx.conf", "/etc/nginx/") == "/etc/nginx/nginx.conf"

    def test_absolute_unchanged(self):
        assert resolve_path("/etc/hosts", "/srv") == "/etc/hosts"

    def test_no_directory(self):
        assert resolve_path("app.env", "") == "app.env"


class TestDetectType:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/etc/nginx/conf.d/app.conf", "nginx"),
            ("/etc/httpd/conf/httpd.conf", "apache"),
            ("/etc/apache2/sites-enabled/000-default.conf", "apache"),
            ("/etc/crontab", "cron"),
            ("/etc/cron.d/backup", "cron"),
            ("/etc/systemd/system/app.service", "systemd"),
            ("/srv/app/worker.service", "systemd"),
            ("/srv/app/Dockerfile", "docker"),
            ("/srv/app/docker-compose.yml", "docker"),
            ("/srv/app/config.yaml", "yaml"),
            ("/srv/app/package.json", "json"),
            ("/srv/app/.env", "env"),
            ("/usr/local/bin/deploy.sh", "shell"),
            ("/srv/app/main.py", "python"),
            ("/srv/app/index.ts", "js"),
            ("/srv/app/server.js", "js"),
            ("/srv/db/schema.sql", "sql"),
            ("/etc/ssh/ssh_config", "ssh"),
            ("/etc/ssh/sshd_config", "ssh"),
            ("/home/user/notes.txt", "other"),
        ],
    )
    def test_rules(self, path, expected):
        assert detect_type(path) == expected

    def test_case_insensitive(self):
        assert detect_type("/ETC/NGINX/NGINX.CONF") == "nginx"
        assert detect_type("/SRV/APP/CONFIG.YML") == "yaml"

    def test_first_rule_wins(self):
        # contains both "nginx" and a .yml suffix
        assert detect_type("/srv/nginx/values.yml") == "nginx"
