from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Party',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('type', models.CharField(choices=[('Buyer', 'Buyer'), ('Supplier', 'Supplier')], max_length=20)),
                ('contact', models.CharField(blank=True, max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='parties', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'parties',
                'ordering': ['name', 'id'],
                'verbose_name_plural': 'parties',
                'indexes': [
                    models.Index(fields=['owner', 'type'], name='idx_party_owner_type'),
                    models.Index(fields=['owner', 'name'], name='idx_party_owner_name'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PartyItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_name', models.CharField(max_length=200)),
                ('item_price', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('party', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='parties.party')),
            ],
            options={
                'db_table': 'party_items',
                'ordering': ['id'],
            },
        ),
    ]
