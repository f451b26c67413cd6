from __future__ import annotations

from django.db import migrations


def create_notification_email_templates(apps, schema_editor) -> None:
    EmailTemplate = apps.get_model("post_office", "EmailTemplate")

    EmailTemplate.objects.update_or_create(
        name="marketplace-notification",
        defaults={
            "description": "Copy of an in-app marketplace notification",
            "subject": "[{{ site_name }}] {{ source }} update",
            "html_content": (
                "<p>Hello {{ full_name }},</p>\n"
                "<p>{{ message }}</p>\n"
                "{% if notifications_url %}<p><a href=\"{{ notifications_url }}\">{{ notifications_url }}</a></p>\n{% endif %}"
                "<p><em>The {{ site_name }} Team</em></p>"
            ),
            "content": (
                "Hello {{ full_name }},\n\n"
                "{{ message }}\n\n"
                "{% if notifications_url %}{{ notifications_url }}\n\n{% endif %}"
                "-- The {{ site_name }} Team\n"
            ),
        },
    )

    EmailTemplate.objects.update_or_create(
        name="marketplace-pending-reviews",
        defaults={
            "description": "Remind project officials about pending applications and task reviews",
            "subject": "Pending review{{ pending_count|pluralize }} for {{ project_name }} ({{ pending_count }})",
            "html_content": (
                "<p>Hello {{ full_name }},</p>\n"
                "<p>The project <strong>{{ project_name }}</strong> has "
                "{{ application_count }} pending volunteer application{{ application_count|pluralize }} and "
                "{{ review_count }} pending task review{{ review_count|pluralize }}.</p>\n"
                "<p><em>The {{ site_name }} Team</em></p>"
            ),
            "content": (
                "Hello {{ full_name }},\n\n"
                "The project {{ project_name }} has "
                "{{ application_count }} pending volunteer application{{ application_count|pluralize }} and "
                "{{ review_count }} pending task review{{ review_count|pluralize }}.\n\n"
                "-- The {{ site_name }} Team\n"
            ),
        },
    )


def delete_notification_email_templates(apps, schema_editor) -> None:
    EmailTemplate = apps.get_model("post_office", "EmailTemplate")
    EmailTemplate.objects.filter(
        name__in=["marketplace-notification", "marketplace-pending-reviews"],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("marketplace", "0001_initial"),
        ("post_office", "0013_email_recipient_delivery_status_alter_log_status"),
    ]

    operations = [
        migrations.RunPython(
            create_notification_email_templates,
            delete_notification_email_templates,
        ),
    ]
