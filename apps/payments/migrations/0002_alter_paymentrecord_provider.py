from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="paymentrecord",
            name="provider",
            field=models.CharField(
                choices=[("tilopay", "Tilopay"), ("paypal", "PayPal"), ("free", "Free plan")],
                max_length=20,
            ),
        ),
    ]
