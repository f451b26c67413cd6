from __future__ import annotations

from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import PermissionDenied
from django.test import TestCase

from marketplace import authorization, roles
from marketplace.models import Project, ProjectTask, ProjectTaskRole, User
from marketplace.tests.helpers import make_organization, make_project, make_user, make_volunteer, task_of_type


class RolesAndPermissionsTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.owner = make_user("owner", initial_type=User.InitialType.ORGANIZATION)
        self.organization = make_organization(self.owner)
        self.project = make_project(self.owner, self.organization)
        self.outsider = make_user("outsider")

    def _volunteer_on(self, username: str, task_type: str) -> User:
        volunteer = make_volunteer(username)
        ProjectTaskRole.objects.create(
            user=volunteer,
            task=task_of_type(self.project, task_type),
            role=ProjectTaskRole.Role.VOLUNTEER,
        )
        return volunteer

    def _publish(self) -> None:
        Project.objects.filter(pk=self.project.pk).update(status=Project.Status.NEW)
        self.project.refresh_from_db()

    def test_anonymous_user_holds_no_role(self) -> None:
        anonymous = AnonymousUser()
        self._publish()

        self.assertFalse(roles.is_project_owner(anonymous, self.project))
        self.assertFalse(roles.is_organization_member(anonymous, self.organization))
        self.assertFalse(authorization.has_permission(anonymous, None, authorization.ORGANIZATION_CREATE))
        self.assertFalse(authorization.has_permission(anonymous, self.project, authorization.PROJECT_TASK_EDIT))
        self.assertTrue(authorization.has_permission(anonymous, self.project, authorization.PROJECT_VIEW))

    def test_draft_project_is_visible_to_members_only(self) -> None:
        self.assertTrue(authorization.has_permission(self.owner, self.project, authorization.PROJECT_VIEW))
        self.assertFalse(authorization.has_permission(self.outsider, self.project, authorization.PROJECT_VIEW))

        self._publish()
        self.assertTrue(authorization.has_permission(self.outsider, self.project, authorization.PROJECT_VIEW))

    def test_only_organization_users_may_create_organizations(self) -> None:
        self.assertTrue(authorization.has_permission(self.owner, None, authorization.ORGANIZATION_CREATE))
        self.assertFalse(authorization.has_permission(self.outsider, None, authorization.ORGANIZATION_CREATE))

    def test_organization_creator_is_administrator(self) -> None:
        self.assertTrue(roles.is_organization_admin(self.owner, self.organization))
        self.assertTrue(roles.is_organization_member(self.owner, self.organization))
        self.assertFalse(roles.is_organization_staff(self.owner, self.organization))
        self.assertFalse(roles.is_organization_member(self.outsider, self.organization))

    def test_scoping_volunteer_is_project_official_and_task_editor(self) -> None:
        scoper = self._volunteer_on("scoper", ProjectTask.Type.SCOPING)

        self.assertTrue(roles.is_project_official(scoper, self.project))
        self.assertTrue(roles.is_project_member(scoper, self.project))
        self.assertTrue(authorization.has_permission(scoper, self.project, authorization.PROJECT_TASK_EDIT))
        self.assertFalse(authorization.has_permission(scoper, self.project, authorization.PROJECT_PUBLISH))

    def test_domain_volunteer_is_not_an_official(self) -> None:
        worker = self._volunteer_on("worker", ProjectTask.Type.DOMAIN_WORK)

        self.assertTrue(roles.is_project_volunteer(worker, self.project))
        self.assertFalse(roles.is_project_official(worker, self.project))
        self.assertFalse(roles.is_project_member(worker, self.project))
        self.assertTrue(authorization.has_permission(worker, self.project, authorization.PROJECT_VIEW))

    def test_roles_on_deleted_tasks_are_ignored(self) -> None:
        scoper = self._volunteer_on("scoper", ProjectTask.Type.SCOPING)
        ProjectTask.objects.filter(project=self.project, type=ProjectTask.Type.SCOPING).update(
            stage=ProjectTask.Stage.DELETED
        )

        self.assertFalse(roles.is_project_scoper(scoper, self.project))
        self.assertFalse(roles.is_project_official(scoper, self.project))

    def test_task_review_excludes_volunteers_of_the_task(self) -> None:
        worker = self._volunteer_on("worker", ProjectTask.Type.DOMAIN_WORK)
        reviewer = self._volunteer_on("reviewer", ProjectTask.Type.QA)
        domain_task = task_of_type(self.project, ProjectTask.Type.DOMAIN_WORK)
        qa_task = task_of_type(self.project, ProjectTask.Type.QA)

        self.assertFalse(authorization.has_permission(worker, domain_task, authorization.PROJECT_TASK_REVIEW_DO))
        self.assertTrue(authorization.has_permission(reviewer, domain_task, authorization.PROJECT_TASK_REVIEW_DO))
        self.assertFalse(authorization.has_permission(reviewer, qa_task, authorization.PROJECT_TASK_REVIEW_DO))
        self.assertTrue(authorization.has_permission(self.owner, domain_task, authorization.PROJECT_TASK_REVIEW_DO))

    def test_only_approved_volunteers_may_apply(self) -> None:
        task = task_of_type(self.project, ProjectTask.Type.DOMAIN_WORK)
        approved = make_volunteer("approved")

        self.assertTrue(authorization.has_permission(approved, task, authorization.PROJECT_TASK_APPLY))
        self.assertFalse(authorization.has_permission(self.outsider, task, authorization.PROJECT_TASK_APPLY))

    def test_ensure_permission_raises_with_permission_name(self) -> None:
        with self.assertRaises(PermissionDenied) as ctx:
            authorization.ensure_permission(self.outsider, self.project, authorization.PROJECT_PUBLISH)
        self.assertEqual(str(ctx.exception), authorization.PROJECT_PUBLISH)

    def test_superuser_does_not_bypass_domain_rules(self) -> None:
        admin = User.objects.create_superuser(username="root", email="root@example.com", password="pw")

        with self.assertRaises(PermissionDenied):
            authorization.ensure_permission(admin, self.project, authorization.PROJECT_PUBLISH)

    def test_unknown_permission_name_is_denied_and_logged(self) -> None:
        with self.assertLogs("marketplace.authorization", level="WARNING") as logs:
            allowed = authorization.has_permission(self.owner, self.project, "project.does_not_exist")

        self.assertFalse(allowed)
        self.assertIn("project.does_not_exist", "\n".join(logs.output))

    def test_backend_answers_object_permissions(self) -> None:
        self.assertTrue(self.owner.has_perm(authorization.PROJECT_PUBLISH, self.project))
        self.assertFalse(self.outsider.has_perm(authorization.PROJECT_PUBLISH, self.project))

        self.owner.is_active = False
        self.owner.save(update_fields=["is_active"])
        self.assertFalse(self.owner.has_perm(authorization.PROJECT_PUBLISH, self.project))

    def test_every_permission_has_a_predicate(self) -> None:
        for name, predicate in authorization.PERMISSIONS.items():
            with self.subTest(name=name):
                self.assertTrue(callable(predicate))
        with self.assertRaises(TypeError):
            authorization.PERMISSIONS["project.view"] = roles.is_project_owner
