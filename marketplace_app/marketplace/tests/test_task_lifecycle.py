from __future__ import annotations

from django.core.exceptions import PermissionDenied
from django.test import TestCase

from marketplace import projects, tasks
from marketplace.errors import ConsistencyError
from marketplace.models import (
    Project,
    ProjectTask,
    ProjectTaskReview,
    ProjectTaskRole,
    ReviewStatus,
    User,
    UserBadge,
    UserNotification,
    VolunteerApplication,
    VolunteerProfile,
)
from marketplace.tests.helpers import make_organization, make_project, make_user, make_volunteer, task_of_type


class TaskLifecycleTestCase(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.owner = make_user("owner", initial_type=User.InitialType.ORGANIZATION)
        self.project = make_project(self.owner, make_organization(self.owner))
        projects.publish_project(user=self.owner, project_id=self.project.pk, project=self.project)
        self.volunteer = make_volunteer("vol")

    def _open_task(self, task_type: str = ProjectTask.Type.DOMAIN_WORK) -> ProjectTask:
        task = task_of_type(self.project, task_type)
        tasks.publish_project_task(user=self.owner, project_id=self.project.pk, task_id=task.pk, task=task)
        tasks.toggle_task_accepting_volunteers(user=self.owner, project_id=self.project.pk, task_id=task.pk)
        task.refresh_from_db()
        return task

    def _apply(self, task: ProjectTask, volunteer: User | None = None) -> VolunteerApplication:
        return tasks.apply_to_volunteer(
            user=volunteer or self.volunteer,
            project_id=self.project.pk,
            task_id=task.pk,
            application=VolunteerApplication(volunteer_application_letter="I can help"),
        )

    def _staff(self, task: ProjectTask, volunteer: User | None = None) -> VolunteerApplication:
        application = self._apply(task, volunteer)
        return tasks.accept_volunteer(
            user=self.owner,
            project_id=self.project.pk,
            task_id=task.pk,
            application=application,
        )

    def _complete(self, task: ProjectTask, hours: int = 8, volunteer: User | None = None) -> ProjectTaskReview:
        return tasks.mark_task_as_completed(
            user=volunteer or self.volunteer,
            project_id=self.project.pk,
            task_id=task.pk,
            review=ProjectTaskReview(volunteer_comment="Done", volunteer_effort_hours=hours),
        )

    def _finish_scoping(self) -> None:
        scoper = make_volunteer("scoper")
        task = self._open_task(ProjectTask.Type.SCOPING)
        self._staff(task, scoper)
        self.assertEqual(self._status(), Project.Status.DESIGN)
        review = self._complete(task, volunteer=scoper)
        tasks.accept_task_review(user=self.owner, project_id=self.project.pk, task_id=task.pk, review=review)
        self.assertEqual(self._status(), Project.Status.WAITING_STAFF)

    def _status(self) -> str:
        self.project.refresh_from_db()
        return self.project.status


class TaskLifecycleScenarioTests(TaskLifecycleTestCase):
    def test_task_from_application_to_finished_project(self) -> None:
        self._finish_scoping()
        task = self._open_task()
        self.assertEqual(task.stage, ProjectTask.Stage.NOT_STARTED)
        self.assertTrue(task.accepting_volunteers)
        self.assertEqual(self._status(), Project.Status.WAITING_STAFF)

        application = self._apply(task)
        self.assertEqual(application.status, ReviewStatus.NEW)

        log_count = self.project.log_entries.count()
        tasks.accept_volunteer(user=self.owner, project_id=self.project.pk, task_id=task.pk, application=application)

        task.refresh_from_db()
        application.refresh_from_db()
        self.assertEqual(application.status, ReviewStatus.ACCEPTED)
        self.assertEqual(application.reviewer, self.owner)
        self.assertEqual(task.stage, ProjectTask.Stage.STARTED)
        self.assertFalse(task.accepting_volunteers)
        self.assertIsNotNone(task.actual_start_date)
        self.assertTrue(ProjectTaskRole.objects.filter(task=task, user=self.volunteer).exists())
        self.assertEqual(self._status(), Project.Status.IN_PROGRESS)
        self.assertEqual(self.project.log_entries.count(), log_count + 2)

        review = self._complete(task, hours=8)
        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.WAITING_REVIEW)
        self.assertEqual(review.volunteer, self.volunteer)
        self.assertEqual(projects.get_user_projects_with_pending_task_requests(self.owner), [self.project])
        self.assertEqual(projects.get_user_projects_with_pending_task_requests(self.volunteer), [])

        review.review_score = ProjectTaskReview.Score.FIVE_STARS
        tasks.accept_task_review(user=self.owner, project_id=self.project.pk, task_id=task.pk, review=review)

        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.COMPLETED)
        self.assertEqual(task.percentage_complete, 1.0)
        self.assertEqual(task.actual_effort_hours, 8)
        self.assertIsNotNone(task.actual_end_date)
        self.assertEqual(self._status(), Project.Status.WAITING_REVIEW)

        profile = VolunteerProfile.objects.get(user=self.volunteer)
        self.assertEqual(profile.completed_task_count, 1)
        self.assertEqual(profile.average_review_score, 5.0)
        badges = dict(UserBadge.objects.filter(user=self.volunteer).values_list("type", "tier"))
        self.assertEqual(badges[UserBadge.Type.NUMBER_OF_PROJECTS], UserBadge.Tier.BASIC)
        self.assertEqual(badges[UserBadge.Type.REVIEW_SCORE], UserBadge.Tier.MASTER)

        projects.finish_project(user=self.owner, project_id=self.project.pk, project=self.project)
        self.assertEqual(self._status(), Project.Status.COMPLETED)
        self.assertIsNotNone(self.project.actual_end_date)

    def test_rejected_review_sends_task_back_to_started(self) -> None:
        self._finish_scoping()
        task = self._open_task()
        self._staff(task)
        review = self._complete(task)

        tasks.reject_task_review(user=self.owner, project_id=self.project.pk, task_id=task.pk, review=review)

        task.refresh_from_db()
        review.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.STARTED)
        self.assertEqual(review.review_result, ReviewStatus.REJECTED)
        self.assertEqual(review.reviewer, self.owner)
        self.assertEqual(self._status(), Project.Status.IN_PROGRESS)

    def test_resolved_review_cannot_be_resolved_again(self) -> None:
        task = self._open_task()
        self._staff(task)
        review = self._complete(task)
        tasks.reject_task_review(user=self.owner, project_id=self.project.pk, task_id=task.pk, review=review)

        with self.assertRaises(ConsistencyError):
            tasks.accept_task_review(user=self.owner, project_id=self.project.pk, task_id=task.pk, review=review)

    def test_only_started_tasks_can_be_completed(self) -> None:
        task = self._open_task()
        self._staff(task)
        self._complete(task)

        with self.assertRaises(ConsistencyError):
            self._complete(task)

    def test_non_volunteers_cannot_complete_tasks(self) -> None:
        task = self._open_task()
        self._staff(task)

        with self.assertRaises(PermissionDenied):
            tasks.mark_task_as_completed(
                user=self.owner,
                project_id=self.project.pk,
                task_id=task.pk,
                review=ProjectTaskReview(volunteer_effort_hours=1),
            )


class TaskReviewPermissionTests(TaskLifecycleTestCase):
    def test_volunteer_cannot_review_own_task(self) -> None:
        task = self._open_task()
        self._staff(task)
        review = self._complete(task)

        with self.assertRaises(PermissionDenied):
            tasks.accept_task_review(user=self.volunteer, project_id=self.project.pk, task_id=task.pk, review=review)

        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.WAITING_REVIEW)

    def test_qa_volunteer_can_review(self) -> None:
        task = self._open_task()
        self._staff(task)
        review = self._complete(task)
        reviewer = make_volunteer("qa")
        ProjectTaskRole.objects.create(
            user=reviewer,
            task=task_of_type(self.project, ProjectTask.Type.QA),
            role=ProjectTaskRole.Role.VOLUNTEER,
        )

        tasks.accept_task_review(user=reviewer, project_id=self.project.pk, task_id=task.pk, review=review)

        review.refresh_from_db()
        self.assertEqual(review.review_result, ReviewStatus.ACCEPTED)
        self.assertEqual(review.reviewer, reviewer)

    def test_reviews_are_visible_to_author_and_reviewers_only(self) -> None:
        task = self._open_task()
        self._staff(task)
        review = self._complete(task)
        outsider = make_volunteer("outsider")

        self.assertEqual(tasks.get_task_reviews(user=self.owner, task=task), [review])
        self.assertEqual(tasks.get_task_reviews(user=self.volunteer, task=task), [review])
        self.assertEqual(tasks.get_task_reviews(user=outsider, task=task), [])
        with self.assertRaises(PermissionDenied):
            tasks.get_project_task_review(
                user=outsider,
                project_id=self.project.pk,
                task_id=task.pk,
                review_id=review.pk,
            )


class VolunteerApplicationTests(TaskLifecycleTestCase):
    def test_duplicate_pending_application_is_rejected(self) -> None:
        task = task_of_type(self.project, ProjectTask.Type.QA)
        tasks.publish_project_task(user=self.owner, project_id=self.project.pk, task_id=task.pk, task=task)
        tasks.toggle_task_accepting_volunteers(user=self.owner, project_id=self.project.pk, task_id=task.pk)
        self._apply(task)

        with self.assertRaises(ConsistencyError):
            self._apply(task)
        self.assertEqual(VolunteerApplication.objects.filter(task=task, volunteer=self.volunteer).count(), 1)

    def test_unapproved_volunteers_cannot_apply(self) -> None:
        task = self._open_task()
        pending = make_volunteer("pending", status=ReviewStatus.NEW)

        with self.assertRaises(PermissionDenied):
            self._apply(task, pending)
        self.assertFalse(VolunteerApplication.objects.exists())

    def test_closed_tasks_reject_applications(self) -> None:
        task = task_of_type(self.project, ProjectTask.Type.DOMAIN_WORK)

        with self.assertRaises(ConsistencyError):
            self._apply(task)

        tasks.publish_project_task(user=self.owner, project_id=self.project.pk, task_id=task.pk, task=task)
        with self.assertRaises(ConsistencyError):
            self._apply(task)

    def test_application_for_a_task_of_another_project_is_rejected(self) -> None:
        task = self._open_task()
        other = make_project(self.owner, self.project.organization, name="P2")

        with self.assertRaises(ConsistencyError):
            tasks.apply_to_volunteer(
                user=self.volunteer,
                project_id=other.pk,
                task_id=task.pk,
                application=VolunteerApplication(),
            )

    def test_rejected_application_creates_no_role(self) -> None:
        task = self._open_task()
        application = self._apply(task)

        tasks.reject_volunteer(user=self.owner, project_id=self.project.pk, task_id=task.pk, application=application)

        application.refresh_from_db()
        task.refresh_from_db()
        self.assertEqual(application.status, ReviewStatus.REJECTED)
        self.assertFalse(ProjectTaskRole.objects.filter(task=task).exists())
        self.assertEqual(task.stage, ProjectTask.Stage.NOT_STARTED)

        with self.assertRaises(ConsistencyError):
            tasks.accept_volunteer(
                user=self.owner,
                project_id=self.project.pk,
                task_id=task.pk,
                application=application,
            )

    def test_shared_task_keeps_accepting_volunteers(self) -> None:
        task = self._open_task(ProjectTask.Type.QA)

        self._staff(task)

        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.STARTED)
        self.assertTrue(task.accepting_volunteers)

        second = make_volunteer("second")
        self._staff(task, second)
        self.assertEqual(tasks.get_task_volunteers(task).count(), 2)


class VolunteerRoleTests(TaskLifecycleTestCase):
    def test_cancelling_the_last_volunteer_reopens_the_task(self) -> None:
        self._finish_scoping()
        task = self._open_task()
        self._staff(task)
        role = ProjectTaskRole.objects.get(task=task, user=self.volunteer)

        tasks.cancel_volunteering(user=self.volunteer, project_id=self.project.pk, task_id=task.pk, role=role)

        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.NOT_STARTED)
        self.assertTrue(task.accepting_volunteers)
        self.assertFalse(ProjectTaskRole.objects.filter(task=task).exists())
        self.assertEqual(self._status(), Project.Status.IN_PROGRESS)

    def test_cannot_cancel_while_waiting_review(self) -> None:
        task = self._open_task()
        self._staff(task)
        self._complete(task)
        role = ProjectTaskRole.objects.get(task=task, user=self.volunteer)

        with self.assertRaises(ConsistencyError):
            tasks.cancel_volunteering(user=self.volunteer, project_id=self.project.pk, task_id=task.pk, role=role)
        self.assertTrue(ProjectTaskRole.objects.filter(pk=role.pk).exists())

    def test_task_with_volunteers_cannot_be_deleted(self) -> None:
        task = self._open_task()
        self._staff(task)

        with self.assertRaises(ConsistencyError):
            tasks.delete_task(user=self.owner, project_id=self.project.pk, task=task)

        role = ProjectTaskRole.objects.get(task=task, user=self.volunteer)
        tasks.cancel_volunteering(user=self.volunteer, project_id=self.project.pk, task_id=task.pk, role=role)
        tasks.delete_task(user=self.owner, project_id=self.project.pk, task=task)

        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.DELETED)
        self.assertNotIn(task, tasks.get_all_tasks(user=self.owner, project=self.project))

    def test_official_can_remove_a_volunteer(self) -> None:
        task = self._open_task()
        self._staff(task)
        role = ProjectTaskRole.objects.get(task=task, user=self.volunteer)

        tasks.delete_project_task_role(user=self.owner, project_id=self.project.pk, task_id=task.pk, role=role)

        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.NOT_STARTED)
        self.assertFalse(tasks.task_has_volunteers(task))

    def test_volunteer_can_be_moved_to_another_task(self) -> None:
        source = self._open_task(ProjectTask.Type.QA)
        target = self._open_task(ProjectTask.Type.DOMAIN_WORK)
        self._staff(source)
        role = ProjectTaskRole.objects.get(task=source, user=self.volunteer)

        role.task = target
        tasks.save_project_task_role(user=self.owner, project_id=self.project.pk, task_id=source.pk, role=role)

        source.refresh_from_db()
        target.refresh_from_db()
        self.assertEqual(source.stage, ProjectTask.Stage.NOT_STARTED)
        self.assertEqual(target.stage, ProjectTask.Stage.STARTED)
        self.assertFalse(target.accepting_volunteers)
        self.assertEqual(list(tasks.get_task_volunteers(target)), [self.volunteer])


class TaskEditingTests(TaskLifecycleTestCase):
    def test_default_task_is_a_draft(self) -> None:
        task = tasks.create_default_task(user=self.owner, project_id=self.project.pk)

        self.assertEqual(task.stage, ProjectTask.Stage.DRAFT)
        self.assertEqual(task.type, ProjectTask.Type.DOMAIN_WORK)
        self.assertNotIn(task, tasks.get_public_tasks(self.project))

    def test_stage_changes_are_restricted(self) -> None:
        task = self._open_task()

        task.stage = ProjectTask.Stage.COMPLETED
        with self.assertRaises(ConsistencyError):
            tasks.save_task(user=self.owner, project_id=self.project.pk, task_id=task.pk, task=task)

        task.stage = ProjectTask.Stage.STARTED
        tasks.save_task(user=self.owner, project_id=self.project.pk, task_id=task.pk, task=task)
        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.STARTED)

    def test_only_drafts_can_be_published(self) -> None:
        task = self._open_task()

        with self.assertRaises(ConsistencyError):
            tasks.publish_project_task(user=self.owner, project_id=self.project.pk, task_id=task.pk, task=task)

    def test_volunteers_cannot_edit_tasks(self) -> None:
        task = self._open_task()

        with self.assertRaises(PermissionDenied):
            tasks.toggle_task_accepting_volunteers(user=self.volunteer, project_id=self.project.pk, task_id=task.pk)

    def test_open_tasks_lists_only_accepting_published_tasks(self) -> None:
        task = self._open_task()

        self.assertEqual(list(tasks.get_open_tasks(self.project)), [task])


class ClosedTaskTests(TaskLifecycleTestCase):
    def test_deleting_a_task_rejects_its_pending_applications(self) -> None:
        task = self._open_task()
        application = self._apply(task)

        tasks.delete_task(user=self.owner, project_id=self.project.pk, task=task)

        application.refresh_from_db()
        self.assertEqual(application.status, ReviewStatus.REJECTED)
        self.assertEqual(application.reviewer, self.owner)
        self.assertIsNotNone(application.resolution_date)
        self.assertFalse(projects.get_user_projects_with_pending_volunteer_requests(self.owner).exists())
        self.assertTrue(
            UserNotification.objects.filter(
                user=self.volunteer,
                severity=UserNotification.Severity.WARNING,
                target_id=task.pk,
            ).exists()
        )

        with self.assertRaises(ConsistencyError):
            tasks.accept_volunteer(
                user=self.owner,
                project_id=self.project.pk,
                task_id=task.pk,
                application=application,
            )
        self.assertFalse(ProjectTaskRole.objects.filter(task=task).exists())

    def test_volunteers_cannot_be_accepted_on_a_completed_task(self) -> None:
        task = self._open_task()
        application = self._apply(task)
        ProjectTask.objects.filter(pk=task.pk).update(stage=ProjectTask.Stage.COMPLETED)

        with self.assertRaises(ConsistencyError):
            tasks.accept_volunteer(
                user=self.owner,
                project_id=self.project.pk,
                task_id=task.pk,
                application=application,
            )

        application.refresh_from_db()
        self.assertEqual(application.status, ReviewStatus.NEW)
        self.assertFalse(ProjectTaskRole.objects.filter(task=task).exists())

    def test_projects_in_draft_take_no_applications(self) -> None:
        task = self._open_task()
        Project.objects.filter(pk=self.project.pk).update(status=Project.Status.DRAFT)

        with self.assertRaises(ConsistencyError):
            self._apply(task)
        self.assertFalse(VolunteerApplication.objects.exists())

    def test_finished_projects_take_no_applications(self) -> None:
        task = self._open_task()
        for status in (Project.Status.COMPLETED, Project.Status.EXPIRED, Project.Status.DELETED):
            Project.objects.filter(pk=self.project.pk).update(status=status)
            with self.subTest(status=status), self.assertRaises(ConsistencyError):
                self._apply(task)
        self.assertFalse(VolunteerApplication.objects.exists())

    def test_volunteer_cannot_be_removed_while_waiting_review(self) -> None:
        task = self._open_task()
        self._staff(task)
        self._complete(task)
        role = ProjectTaskRole.objects.get(task=task, user=self.volunteer)

        with self.assertRaises(ConsistencyError):
            tasks.delete_project_task_role(user=self.owner, project_id=self.project.pk, task_id=task.pk, role=role)

        task.refresh_from_db()
        self.assertEqual(task.stage, ProjectTask.Stage.WAITING_REVIEW)
        self.assertTrue(ProjectTaskRole.objects.filter(pk=role.pk).exists())
