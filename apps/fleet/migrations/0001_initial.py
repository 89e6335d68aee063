from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Boat",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("capacity", models.PositiveSmallIntegerField(default=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("ACTIVE", "En service"),
                            ("MAINTENANCE", "En maintenance"),
                            ("RETIRED", "Hors flotte"),
                        ],
                        db_index=True,
                        default="ACTIVE",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Barque",
                "verbose_name_plural": "Barques",
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("capacity__gt", 0)), name="boat_positive_capacity"),
                ],
            },
        ),
    ]
