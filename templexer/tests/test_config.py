from __future__ import annotations

from pathlib import Path
import json
import os
import tempfile
import unittest

import yaml

from templexer.src.config import DeploymentSpec, SchemaVersion, WorkloadConfig
from templexer.src.errors import ConfigError
from templexer.tests.support import WORKLOAD_YAML, write_file


def minimal_document(**overrides):
    document = {
        "version": "v2",
        "chart": "charts/nginx",
        "release_name": "my-app",
        "output_path": "manifests",
        "deployments": [{"name": "edge"}],
    }
    document.update(overrides)
    return document


class WorkloadConfigFromMappingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.base_dir = Path("/configs/app")

    def build(self, document, **kwargs) -> WorkloadConfig:
        return WorkloadConfig.from_mapping(document, base_dir=self.base_dir, **kwargs)

    def test_applies_defaults(self) -> None:
        config = self.build(minimal_document())

        self.assertIs(config.schema_version, SchemaVersion.V2)
        self.assertTrue(config.enabled)
        self.assertIsNone(config.namespace)
        self.assertEqual(config.global_additional_options, ())
        self.assertEqual(config.global_values, ())
        deployment = config.deployments[0]
        self.assertEqual(deployment, DeploymentSpec(name="edge"))
        self.assertTrue(deployment.enabled)
        self.assertIsNone(deployment.release_name)

    def test_paths_are_relative_to_config_directory(self) -> None:
        config = self.build(
            minimal_document(
                values=["values/default.yaml", "/abs/shared.yaml"],
                deployments=[{"name": "edge", "values": ["../other/edge.yaml"]}],
            )
        )

        self.assertEqual(config.chart_path, self.base_dir / "charts/nginx")
        self.assertEqual(config.output_base_path, self.base_dir / "manifests")
        self.assertEqual(config.global_values, (self.base_dir / "values/default.yaml", Path("/abs/shared.yaml")))
        self.assertEqual(config.deployments[0].values, (self.base_dir / "../other/edge.yaml",))

    def test_missing_release_name_names_field(self) -> None:
        document = minimal_document()
        del document["release_name"]
        with self.assertRaises(ConfigError) as ctx:
            self.build(document)
        self.assertEqual(ctx.exception.field, "release_name")
        self.assertIn("release_name", str(ctx.exception))

    def test_missing_chart(self) -> None:
        document = minimal_document()
        del document["chart"]
        with self.assertRaises(ConfigError) as ctx:
            self.build(document)
        self.assertEqual(ctx.exception.field, "chart")

    def test_output_path_required_unless_streaming(self) -> None:
        document = minimal_document()
        del document["output_path"]

        with self.assertRaises(ConfigError) as ctx:
            self.build(document)
        self.assertEqual(ctx.exception.field, "output_path")

        config = self.build(document, streaming=True)
        self.assertIsNone(config.output_base_path)

    def test_deployments_must_not_be_empty(self) -> None:
        for value in ([], None):
            with self.subTest(deployments=value):
                with self.assertRaises(ConfigError) as ctx:
                    self.build(minimal_document(deployments=value))
                self.assertEqual(ctx.exception.field, "deployments")

    def test_deployment_without_name(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            self.build(minimal_document(deployments=[{"name": "edge"}, {"enabled": False}]))
        self.assertEqual(ctx.exception.field, "deployments[1].name")

    def test_duplicate_deployment_names_are_rejected(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            self.build(minimal_document(deployments=[{"name": "edge"}, {"name": "prod"}, {"name": "edge"}]))
        self.assertEqual(ctx.exception.field, "deployments[2].name")

    def test_deployment_name_must_be_single_path_segment(self) -> None:
        for name in ("a/b", "..", ".", "../escaped"):
            with self.subTest(name=name):
                with self.assertRaises(ConfigError) as ctx:
                    self.build(minimal_document(deployments=[{"name": "edge"}, {"name": name}]))
                self.assertEqual(ctx.exception.field, "deployments[1].name")

    def test_release_name_must_be_single_path_segment(self) -> None:
        for release in ("../../escaped", "team/app", ".."):
            with self.subTest(release=release):
                with self.assertRaises(ConfigError) as ctx:
                    self.build(minimal_document(release_name=release))
                self.assertEqual(ctx.exception.field, "release_name")

                with self.assertRaises(ConfigError) as ctx:
                    self.build(minimal_document(deployments=[{"name": "edge", "release_name": release}]))
                self.assertEqual(ctx.exception.field, "deployments[0].release_name")

    def test_dotted_names_are_allowed(self) -> None:
        config = self.build(
            minimal_document(release_name="my.app", deployments=[{"name": "edge.eu", "release_name": "..app"}])
        )
        self.assertEqual(config.deployments[0].name, "edge.eu")
        self.assertEqual(config.deployments[0].release_name, "..app")

    def test_value_entries_are_kept_verbatim(self) -> None:
        config = self.build(minimal_document(values=["values/with space .yaml"]))
        self.assertEqual(config.global_values, (self.base_dir / "values/with space .yaml",))

        with self.assertRaises(ConfigError) as ctx:
            self.build(minimal_document(deployments=[{"name": "edge", "values": [""]}]))
        self.assertEqual(ctx.exception.field, "deployments[0].values")

    def test_unknown_schema_version(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            self.build(minimal_document(version="v3"))
        self.assertEqual(ctx.exception.field, "version")

    def test_missing_schema_version(self) -> None:
        document = minimal_document()
        del document["version"]
        with self.assertRaises(ConfigError) as ctx:
            self.build(document)
        self.assertEqual(ctx.exception.field, "version")

    def test_v1_keeps_directory_output(self) -> None:
        config = self.build(minimal_document(version="v1"))
        self.assertFalse(config.schema_version.single_file_output)

    def test_enabled_must_be_boolean(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            self.build(minimal_document(deployments=[{"name": "edge", "enabled": "no"}]))
        self.assertEqual(ctx.exception.field, "deployments[0].enabled")

    def test_values_must_be_strings(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            self.build(minimal_document(values=["ok.yaml", 42]))
        self.assertEqual(ctx.exception.field, "values")

    def test_unparsable_option_is_rejected(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            self.build(minimal_document(additional_options=["--set 'unterminated"]))
        self.assertEqual(ctx.exception.field, "additional_options")

    def test_empty_namespace_means_none(self) -> None:
        self.assertIsNone(self.build(minimal_document(namespace="")).namespace)

    def test_with_additional_options_returns_new_config(self) -> None:
        config = self.build(minimal_document(additional_options=["--skip-crds"]))

        extended = config.with_additional_options(["--set-string image.tag=abc"])

        self.assertEqual(extended.global_additional_options, ("--skip-crds", "--set-string image.tag=abc"))
        self.assertEqual(config.global_additional_options, ("--skip-crds",))
        self.assertIs(config.with_additional_options([]), config)

    def test_enabled_deployments(self) -> None:
        config = self.build(
            minimal_document(deployments=[{"name": "a"}, {"name": "b", "enabled": False}, {"name": "c"}])
        )
        self.assertEqual([d.name for d in config.enabled_deployments()], ["a", "c"])

        disabled = self.build(minimal_document(enabled=False))
        self.assertEqual(list(disabled.enabled_deployments()), [])


class WorkloadConfigLoadTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_formats_produce_identical_models(self) -> None:
        document = yaml.safe_load(WORKLOAD_YAML)
        yaml_path = write_file(self.root, "workload.yaml", WORKLOAD_YAML)
        json_path = write_file(self.root, "workload.json", json.dumps(document))
        toml_path = write_file(
            self.root,
            "workload.toml",
            """
            version = "v2"
            enabled = true
            chart = "charts/nginx"
            namespace = "my-namespace"
            release_name = "my-app"
            output_path = "manifests"
            additional_options = ["--skip-crds", "--no-hooks"]
            values = ["values/default.yaml"]

            [[deployments]]
            name = "edge-eu-w4"
            values = ["values/edge.yaml"]
            additional_options = ["--set image.tag=latest"]

            [[deployments]]
            name = "next-edge-eu-w4"
            enabled = false
            values = ["values/edge.yaml", "values/next-edge.yaml"]

            [[deployments]]
            name = "stage-eu-w4"
            values = ["values/stage.yaml"]

            [[deployments]]
            name = "prod-eu-w4"
            release_name = "my-app-prod-eu-w4"
            values = ["values/prod.yaml", "values/prod-eu-w4.yaml"]
            """,
        )

        configs = [WorkloadConfig.load(path) for path in (yaml_path, json_path, toml_path)]

        def comparable(config: WorkloadConfig):
            return (
                config.schema_version,
                config.chart_path,
                config.release_name,
                config.namespace,
                config.output_base_path,
                config.global_additional_options,
                config.global_values,
                config.deployments,
            )

        self.assertEqual(comparable(configs[0]), comparable(configs[1]))
        self.assertEqual(comparable(configs[1]), comparable(configs[2]))
        self.assertEqual(configs[0].chart_path, self.root.resolve() / "charts/nginx")

    def test_paths_ignore_working_directory(self) -> None:
        path = write_file(self.root, "nested/workload.yaml", WORKLOAD_YAML)
        other = tempfile.TemporaryDirectory()
        self.addCleanup(other.cleanup)
        previous = os.getcwd()
        os.chdir(other.name)
        self.addCleanup(os.chdir, previous)

        config = WorkloadConfig.load(Path(os.path.relpath(path, other.name)))

        self.assertEqual(config.base_dir, (self.root / "nested").resolve())
        self.assertEqual(config.output_base_path, (self.root / "nested").resolve() / "manifests")

    def test_missing_file(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            WorkloadConfig.load(self.root / "does-not-exist.yaml")
        self.assertIn("does not exist or is not readable", str(ctx.exception))

    def test_decode_errors_become_config_errors(self) -> None:
        broken = write_file(self.root, "broken.toml", "version = \n")
        with self.assertRaises(ConfigError):
            WorkloadConfig.load(broken)

    def test_unsupported_format(self) -> None:
        path = write_file(self.root, "workload.ini", "[x]\n")
        with self.assertRaises(ConfigError):
            WorkloadConfig.load(path)

    def test_errors_mention_the_file(self) -> None:
        path = write_file(self.root, "workload.yaml", "version: v2\nchart: c\noutput_path: o\ndeployments: [{name: a}]\n")
        with self.assertRaises(ConfigError) as ctx:
            WorkloadConfig.load(path)
        self.assertIn(str(path), str(ctx.exception))
        self.assertEqual(ctx.exception.field, "release_name")


if __name__ == "__main__":
    unittest.main()
