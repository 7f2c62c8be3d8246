import json
import unittest

from curriculum_planner.core.errors import MalformedResponseError, UpstreamError, ValidationError
from curriculum_planner.services import curriculum_planner as cp
from curriculum_planner.services.curriculum_schema import BIAS_NOTE

from tests.fakes import FakeAIService, make_module, make_plan_json


class CurriculumPlannerTests(unittest.TestCase):
    def _planner(self, fake: FakeAIService) -> cp.CurriculumPlanner:
        return cp.CurriculumPlanner(fake, retry_backoff_sec=0)

    def _request(self, **overrides) -> cp.CurriculumRequest:
        values = {
            "subjects": ["Math"],
            "durationWeeks": 2,
            "hoursPerDay": 2,
        }
        values.update(overrides)
        return cp.CurriculumRequest(**values)

    def test_generate_returns_exact_week_sequence_without_fairness(self) -> None:
        fake = FakeAIService(make_plan_json(4))

        result = self._planner(fake).generate(self._request(durationWeeks=4))

        self.assertEqual([module["week"] for module in result["modules"]], [1, 2, 3, 4])
        self.assertEqual(result["duration_weeks"], 4)
        self.assertEqual(result["planId"], "plan-fixed")
        self.assertEqual(len(fake.calls), 1)

    def test_generate_uses_system_prompt_and_creative_temperature(self) -> None:
        fake = FakeAIService(make_plan_json(2))

        self._planner(fake).generate(self._request())

        call = fake.calls[0]
        self.assertEqual(call["temperature"], 0.7)
        self.assertEqual([msg["role"] for msg in call["messages"]], ["system", "user"])
        self.assertEqual(call["messages"][0]["content"], cp.CURRICULUM_SYSTEM_PROMPT)
        prompt = call["messages"][1]["content"]
        self.assertIn("Create exactly 2 weekly modules", prompt)
        self.assertIn("Distribute subjects evenly", prompt)
        self.assertIn("3-5 clear learning outcomes", prompt)
        self.assertIn('"title", "url", and "type"', prompt)
        self.assertIn("no markdown, no code blocks", prompt)
        self.assertNotIn("biasNote", prompt)

    def test_fairness_module_is_appended_after_model_modules(self) -> None:
        fake = FakeAIService(make_plan_json(3))

        result = self._planner(fake).generate(self._request(durationWeeks=3, focusOnFairness=True))

        self.assertEqual(len(result["modules"]), 4)
        last = result["modules"][-1]
        self.assertEqual(last["week"], 4)
        self.assertEqual(last["subject"], "Ethics")
        self.assertEqual(last["title"], "Fair Learning Practices")
        self.assertEqual(len(last["resources"]), 2)
        self.assertNotIn("biasNote", last)

    def test_fairness_module_is_not_shared_between_calls(self) -> None:
        fake = FakeAIService(make_plan_json(1))
        planner = self._planner(fake)

        first = planner.generate(self._request(durationWeeks=1, focusOnFairness=True))
        first["modules"][-1]["activities"].append("mutated")
        second = planner.generate(self._request(durationWeeks=1, focusOnFairness=True))

        self.assertNotIn("mutated", second["modules"][-1]["activities"])

    def test_bias_and_fairness_scenario_keeps_model_bias_notes(self) -> None:
        fake = FakeAIService(make_plan_json(2, biasNote="stub supplied note"))

        result = self._planner(fake).generate(
            self._request(includeBiasWarnings=True, focusOnFairness=True)
        )

        modules = result["modules"]
        self.assertEqual(len(modules), 3)
        self.assertEqual(modules[0]["biasNote"], "stub supplied note")
        self.assertEqual(modules[1]["biasNote"], "stub supplied note")
        self.assertEqual(modules[2]["subject"], "Ethics")
        self.assertEqual(modules[2]["biasNote"], BIAS_NOTE)

    def test_bias_warnings_are_requested_in_prompt_and_kept(self) -> None:
        fake = FakeAIService(make_plan_json(2, biasNote=BIAS_NOTE))

        result = self._planner(fake).generate(
            self._request(includeBiasWarnings=True, focusOnFairness=True)
        )

        prompt = fake.calls[0]["messages"][1]["content"]
        self.assertIn(f'"biasNote": "{BIAS_NOTE}"', prompt)
        self.assertTrue(all(module["biasNote"] == BIAS_NOTE for module in result["modules"]))

    def test_hardest_subject_gets_extra_activities_instruction(self) -> None:
        fake = FakeAIService(make_plan_json(2))

        self._planner(fake).generate(self._request(subjects=["Math", "Physics"], hardestSubject="Physics"))

        prompt = fake.calls[0]["messages"][1]["content"]
        self.assertIn("Hardest Subject (needs extra focus): Physics", prompt)
        self.assertIn("more practice activities for Physics", prompt)

    def test_fenced_response_parses_like_plain_response(self) -> None:
        plain = make_plan_json(2)
        fenced = f"```json\n{plain}\n```"

        plain_result = self._planner(FakeAIService(plain)).generate(self._request())
        fenced_result = self._planner(FakeAIService(fenced)).generate(self._request())

        self.assertEqual(fenced_result, plain_result)

    def test_invalid_json_raises_malformed_after_adjusted_retry(self) -> None:
        fake = FakeAIService("Here is your plan: {not json")

        with self.assertRaises(MalformedResponseError) as ctx:
            self._planner(fake).generate(self._request())

        self.assertEqual(ctx.exception.kind, "invalid_json")
        self.assertEqual(ctx.exception.error_code, "invalid_json")
        self.assertEqual(len(fake.calls), 2)
        first_prompt = fake.calls[0]["messages"][1]["content"]
        retry_prompt = fake.calls[1]["messages"][1]["content"]
        self.assertNotIn("previous answer was rejected", first_prompt)
        self.assertIn("previous answer was rejected (invalid_json)", retry_prompt)

    def test_wrong_module_count_is_retried_then_accepted(self) -> None:
        fake = FakeAIService(make_plan_json(2), make_plan_json(3))

        result = self._planner(fake).generate(self._request(durationWeeks=3))

        self.assertEqual(len(result["modules"]), 3)
        self.assertEqual(len(fake.calls), 2)
        self.assertIn("schema_mismatch", fake.calls[1]["messages"][1]["content"])

    def test_json_without_modules_is_schema_mismatch(self) -> None:
        fake = FakeAIService(json.dumps({"planId": "x", "weeks": []}))

        with self.assertRaises(MalformedResponseError) as ctx:
            self._planner(fake).generate(self._request())

        self.assertEqual(ctx.exception.kind, "schema_mismatch")

    def test_unknown_resource_type_is_schema_mismatch(self) -> None:
        modules = [make_module(1), make_module(2)]
        modules[1]["resources"][0]["type"] = "trial"
        fake = FakeAIService(json.dumps({"duration_weeks": 2, "modules": modules}))

        with self.assertRaises(MalformedResponseError) as ctx:
            self._planner(fake).generate(self._request())

        self.assertEqual(ctx.exception.kind, "schema_mismatch")

    def test_resource_type_case_is_normalized(self) -> None:
        modules = [make_module(1), make_module(2)]
        modules[0]["resources"][0]["type"] = " FREE "
        fake = FakeAIService(json.dumps({"planId": "p", "duration_weeks": 2, "modules": modules}))

        result = self._planner(fake).generate(self._request())

        self.assertEqual(result["modules"][0]["resources"][0]["type"], "free")

    def test_modules_are_ordered_by_week(self) -> None:
        modules = [make_module(2), make_module(1)]
        fake = FakeAIService(json.dumps({"planId": "p", "duration_weeks": 2, "modules": modules}))

        result = self._planner(fake).generate(self._request())

        self.assertEqual([module["week"] for module in result["modules"]], [1, 2])

    def test_extra_model_fields_are_preserved(self) -> None:
        fake = FakeAIService(make_plan_json(2, estimated_hours=10))

        result = self._planner(fake).generate(self._request())

        self.assertEqual(result["modules"][0]["estimated_hours"], 10)

    def test_null_extra_fields_are_preserved_and_missing_bias_note_is_omitted(self) -> None:
        fake = FakeAIService(make_plan_json(2, notes=None))

        result = self._planner(fake).generate(self._request())

        self.assertIn("notes", result["modules"][0])
        self.assertIsNone(result["modules"][0]["notes"])
        self.assertNotIn("biasNote", result["modules"][0])

    def test_numeric_plan_id_is_returned_as_string(self) -> None:
        fake = FakeAIService(make_plan_json(2, plan_id=123))

        result = self._planner(fake).generate(self._request())

        self.assertEqual(result["planId"], "123")
        self.assertEqual(len(fake.calls), 1)

    def test_missing_plan_id_is_synthesized_and_unique(self) -> None:
        fake = FakeAIService(make_plan_json(2, plan_id=None))
        planner = self._planner(fake)

        first = planner.generate(self._request())
        second = planner.generate(self._request())

        self.assertRegex(first["planId"], r"^plan-\d+-[0-9a-z]{9}$")
        self.assertRegex(second["planId"], r"^plan-\d+-[0-9a-z]{9}$")
        self.assertNotEqual(first["planId"], second["planId"])

    def test_transient_upstream_failure_is_retried(self) -> None:
        fake = FakeAIService(UpstreamError("gateway_timeout", kind="timeout"), make_plan_json(2))

        result = self._planner(fake).generate(self._request())

        self.assertEqual(len(result["modules"]), 2)
        self.assertEqual(len(fake.calls), 2)

    def test_client_side_upstream_failure_is_not_retried(self) -> None:
        fake = FakeAIService(UpstreamError("gateway_http_401", upstream_status=401))

        with self.assertRaises(UpstreamError):
            self._planner(fake).generate(self._request())

        self.assertEqual(len(fake.calls), 1)


class CurriculumRequestValidationTests(unittest.TestCase):
    def _generate(self, **values) -> FakeAIService:
        fake = FakeAIService(make_plan_json(2))
        cp.CurriculumPlanner(fake, retry_backoff_sec=0).generate(cp.CurriculumRequest(**values))
        return fake

    def test_empty_subjects_are_rejected_before_provider_call(self) -> None:
        fake = FakeAIService(make_plan_json(2))
        with self.assertRaises(ValidationError):
            cp.CurriculumPlanner(fake).generate(
                cp.CurriculumRequest(subjects=["  ", ""], durationWeeks=2, hoursPerDay=2)
            )
        self.assertEqual(fake.calls, [])

    def test_missing_fields_raise_validation_error(self) -> None:
        with self.assertRaises(ValidationError):
            self._generate(subjects=["Math"], hoursPerDay=2)
        with self.assertRaises(ValidationError):
            self._generate(subjects=["Math"], durationWeeks=2)
        with self.assertRaises(ValidationError):
            self._generate()

    def test_out_of_range_values_raise_validation_error(self) -> None:
        with self.assertRaises(ValidationError):
            self._generate(subjects=["Math"], durationWeeks=53, hoursPerDay=2)
        with self.assertRaises(ValidationError):
            self._generate(subjects=["Math"], durationWeeks=0, hoursPerDay=2)
        with self.assertRaises(ValidationError):
            self._generate(subjects=["Math"], durationWeeks=2, hoursPerDay=25)

    def test_unknown_learning_style_is_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self._generate(subjects=["Math"], durationWeeks=2, hoursPerDay=2, learningStyle="telepathic")
        self.assertIn("learningStyle", ctx.exception.public_message)

    def test_comma_separated_subjects_are_split(self) -> None:
        request = cp.validate_request(
            cp.CurriculumRequest(subjects="Math, Physics ,", durationWeeks=2, hoursPerDay=2)
        )
        self.assertEqual(request.subjects, ["Math", "Physics"])

    def test_learning_style_aliases(self) -> None:
        self.assertEqual(cp.normalize_learning_style(None), "balanced")
        self.assertEqual(cp.normalize_learning_style("Reading/Writing"), "reading_writing")
        self.assertEqual(cp.normalize_learning_style("Visual"), "visual")
        self.assertEqual(cp.normalize_learning_style("mixed"), "balanced")

    def test_learning_style_reaches_prompt(self) -> None:
        fake = self._generate(subjects=["Math"], durationWeeks=2, hoursPerDay=2, learningStyle="kinesthetic")
        prompt = fake.calls[0]["messages"][1]["content"]
        self.assertIn("Learning Style: kinesthetic", prompt)
        self.assertIn("Academic Goal: General mastery", prompt)


if __name__ == "__main__":
    unittest.main()
