from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(max_length=100, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('warehouse_qty', models.PositiveIntegerField(default=0)),
                ('amazon_qty', models.PositiveIntegerField(default=0)),
                ('ml_qty', models.PositiveIntegerField(default=0)),
                ('amazon_asin', models.CharField(blank=True, max_length=20, null=True)),
                ('ml_item_id', models.CharField(blank=True, max_length=50, null=True)),
                ('ml_variation_id', models.CharField(blank=True, max_length=50, null=True)),
                ('last_sync_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['sku'],
            },
        ),
        migrations.CreateModel(
            name='SyncLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('success', 'Success'), ('partial', 'Partial'), ('error', 'Error')], max_length=10)),
                ('message', models.TextField()),
                ('details', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='SyncLock',
            fields=[
                ('name', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('owner', models.CharField(max_length=64)),
                ('locked_at', models.DateTimeField()),
            ],
        ),
    ]
