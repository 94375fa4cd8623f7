# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest
from botocore.exceptions import ClientError

from cumulus.core.config import ScheduleSpec
from cumulus.deployment.schedule import reconcile_schedule
from cumulus.mixins.aws.test import AWSTestBase, MockAWSClients, client_error

SCHEDULE = ScheduleSpec("svc-cron", "every 5 mins", "rate(5 minutes)")


class TestSchedule(AWSTestBase):
    def _reconcile(self, mock_clients, schedule, environment="dev"):
        return reconcile_schedule(
            mock_clients["lambda"], mock_clients["events"], "svc-dev", mock_clients.function_arn("svc-dev"), environment, schedule
        )

    @pytest.mark.parametrize(
        "schedule",
        [
            None,
            ScheduleSpec(None, "every 5 mins", "rate(5 minutes)"),
            ScheduleSpec("svc-cron", None, "rate(5 minutes)"),
            ScheduleSpec("svc-cron", "every 5 mins", None),
        ],
    )
    def test_incomplete_schedule_makes_no_calls(self, mock_clients: MockAWSClients, schedule):
        assert self._reconcile(mock_clients, schedule) is None
        assert mock_clients.call_names() == []

    def test_rule_permission_and_target(self, mock_clients: MockAWSClients):
        rule_arn = self._reconcile(mock_clients, SCHEDULE)

        assert rule_arn == mock_clients.rule_arn("svc-cron")
        assert mock_clients.call_names() == ["events.put_rule", "lambda_.remove_permission", "lambda_.add_permission", "events.put_targets"]
        mock_clients["events"].put_rule.assert_called_once_with(
            Name="svc-cron", ScheduleExpression="rate(5 minutes)", Description="every 5 mins", State="ENABLED"
        )
        mock_clients["lambda"].add_permission.assert_called_once_with(
            FunctionName="svc-dev",
            StatementId="svc-cron-dev-CronId",
            Action="lambda:InvokeFunction",
            Principal="events.amazonaws.com",
            SourceArn=rule_arn,
        )
        mock_clients["events"].put_targets.assert_called_once_with(
            Rule="svc-cron", Targets=[{"Id": "svc-dev-1", "Arn": mock_clients.function_arn("svc-dev")}]
        )

    def test_statement_id_without_environment(self, mock_clients: MockAWSClients):
        self._reconcile(mock_clients, SCHEDULE, environment=None)
        assert mock_clients["lambda"].add_permission.call_args.kwargs["StatementId"] == "svc-cron-default-CronId"

    def test_rule_failure_is_not_fatal(self, mock_clients: MockAWSClients):
        mock_clients["events"].put_rule.side_effect = client_error("LimitExceededException")
        assert self._reconcile(mock_clients, SCHEDULE) is None
        mock_clients["lambda"].add_permission.assert_not_called()
        mock_clients["events"].put_targets.assert_called_once()

    def test_permission_failure_is_not_fatal(self, mock_clients: MockAWSClients):
        mock_clients["lambda"].add_permission.side_effect = client_error("AccessDeniedException")
        assert self._reconcile(mock_clients, SCHEDULE) == mock_clients.rule_arn("svc-cron")
        mock_clients["events"].put_targets.assert_called_once()

    def test_permission_retried_while_function_is_updating(self, mock_clients: MockAWSClients, no_sleep):
        in_progress = client_error("ResourceConflictException", message="An update is in progress for resource: svc-dev")
        mock_clients["lambda"].add_permission.side_effect = [in_progress, {"Statement": "{}"}]
        assert self._reconcile(mock_clients, SCHEDULE) == mock_clients.rule_arn("svc-cron")
        assert mock_clients["lambda"].add_permission.call_count == 2
        mock_clients["events"].put_targets.assert_called_once()

    def test_target_failure_is_fatal(self, mock_clients: MockAWSClients):
        mock_clients["events"].put_targets.side_effect = client_error("ResourceNotFoundException")
        with pytest.raises(ClientError):
            self._reconcile(mock_clients, SCHEDULE)

    def test_failed_target_entries_are_fatal(self, mock_clients: MockAWSClients):
        mock_clients["events"].put_targets.return_value = {"FailedEntryCount": 1, "FailedEntries": [{"TargetId": "svc-dev-1"}]}
        with pytest.raises(RuntimeError):
            self._reconcile(mock_clients, SCHEDULE)
