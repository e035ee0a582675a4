import pytest

from apirunner import loader
from apirunner.exceptions import FileFormatError, FileNotFound


class TestLoadFiles:
    def test_load_yaml_file(self, tmp_path):
        yaml_file = tmp_path / "swagger.yml"
        yaml_file.write_text("swagger: '2.0'\nhost: api.demo.com\n")

        assert loader.load_yaml_file(str(yaml_file)) == {
            "swagger": "2.0",
            "host": "api.demo.com",
        }

    def test_load_yaml_file_missing(self, tmp_path):
        with pytest.raises(FileNotFound):
            loader.load_yaml_file(str(tmp_path / "missing.yml"))

    def test_load_api_document_by_suffix(self, tmp_path):
        yaml_file = tmp_path / "swagger.yaml"
        yaml_file.write_text("paths: {}\n")
        json_file = tmp_path / "collection.json"
        json_file.write_text('{"item": []}')

        assert loader.load_api_document(str(yaml_file)) == {"paths": {}}
        assert loader.load_api_document(str(json_file)) == {"item": []}

    def test_load_api_document_missing(self, tmp_path):
        with pytest.raises(FileNotFound):
            loader.load_api_document(str(tmp_path / "missing.json"))


class TestLoadVariablesFile:
    def test_yaml(self, tmp_path):
        variables_file = tmp_path / "user.yaml"
        variables_file.write_text("user:\n  name: demo\n  id: 1001\n")

        assert loader.load_variables_file(str(variables_file)) == {
            "user": {"name": "demo", "id": 1001}
        }

    def test_json(self, tmp_path):
        variables_file = tmp_path / "user.json"
        variables_file.write_text('{"user": {"name": "demo"}}')

        assert loader.load_variables_file(str(variables_file)) == {"user": {"name": "demo"}}

    def test_empty_yaml(self, tmp_path):
        variables_file = tmp_path / "empty.yml"
        variables_file.write_text("")

        assert loader.load_variables_file(str(variables_file)) == {}

    def test_not_mapping(self, tmp_path):
        variables_file = tmp_path / "list.yaml"
        variables_file.write_text("- a\n- b\n")

        with pytest.raises(FileFormatError):
            loader.load_variables_file(str(variables_file))

    def test_unsupported_suffix(self, tmp_path):
        variables_file = tmp_path / "user.txt"
        variables_file.write_text("user: demo")

        with pytest.raises(FileFormatError):
            loader.load_variables_file(str(variables_file))

    def test_invalid_yaml_names_file(self, tmp_path):
        variables_file = tmp_path / "broken.yaml"
        variables_file.write_text("user: [demo\n")

        with pytest.raises(FileFormatError) as exc_info:
            loader.load_variables_file(str(variables_file))
        assert str(variables_file) in str(exc_info.value)

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFound):
            loader.load_variables_file(str(tmp_path / "missing.yaml"))


class TestLoadDotEnvFile:
    def test_load(self, tmp_path):
        dot_env = tmp_path / ".env"
        dot_env.write_text("# comment\nUserName=demo\nPassword: 123456\n\nTOKEN=a=b\n")

        assert loader.load_dot_env_file(str(dot_env)) == {
            "UserName": "demo",
            "Password": "123456",
            "TOKEN": "a=b",
        }

    def test_missing_file(self, tmp_path):
        assert loader.load_dot_env_file(str(tmp_path / ".env")) == {}

    def test_invalid_line(self, tmp_path):
        dot_env = tmp_path / ".env"
        dot_env.write_text("no separator\n")

        with pytest.raises(FileFormatError):
            loader.load_dot_env_file(str(dot_env))
