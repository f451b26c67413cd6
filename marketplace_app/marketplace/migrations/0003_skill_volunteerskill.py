from __future__ import annotations

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("marketplace", "0002_create_notification_email_templates"),
    ]

    operations = [
        migrations.CreateModel(
            name="Skill",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("area", models.CharField(max_length=100)),
                ("name", models.CharField(max_length=100)),
            ],
            options={
                "ordering": ("area", "name"),
            },
        ),
        migrations.CreateModel(
            name="VolunteerSkill",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "level",
                    models.IntegerField(choices=[(0, "Beginner"), (1, "Intermediate"), (2, "Expert")], default=0),
                ),
                (
                    "skill",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="volunteer_skills",
                        to="marketplace.skill",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="skills",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.AddConstraint(
            model_name="skill",
            constraint=models.UniqueConstraint(fields=("area", "name"), name="uniq_skill_area_name"),
        ),
        migrations.AddConstraint(
            model_name="volunteerskill",
            constraint=models.UniqueConstraint(fields=("user", "skill"), name="uniq_volunteer_skill"),
        ),
    ]
