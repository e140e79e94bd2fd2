import django.core.validators
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, max_length=200)),
                ('description', models.TextField(blank=True, null=True)),
                ('type', models.CharField(choices=[('water', 'Water'), ('gas', 'Gas'), ('coal', 'Coal'), ('other', 'Other')], default='other', max_length=10)),
                ('price_full', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('price_refill', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('stock_full', models.IntegerField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ('stock_empty', models.IntegerField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ('expiry_month', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ('expiry_year', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'products',
                'ordering': ['name'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('stock_full__gte', 0)), name='product_stock_full_non_negative'),
                    models.CheckConstraint(condition=models.Q(('stock_empty__gte', 0)), name='product_stock_empty_non_negative'),
                ],
            },
        ),
    ]
