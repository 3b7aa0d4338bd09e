from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('inventory', '0001_initial'),
    ]

    operations = [
        migrations.AddConstraint(
            model_name='conversionedge',
            constraint=models.UniqueConstraint(
                condition=models.Q(('is_deleted', False)),
                fields=('from_unit', 'to_unit'),
                name='inventory_edge_live_pair_uniq',
            ),
        ),
        migrations.AddConstraint(
            model_name='inventory',
            constraint=models.UniqueConstraint(
                condition=models.Q(('is_deleted', False), ('warehouse__isnull', False)),
                fields=('material', 'warehouse'),
                name='inventory_live_stock_uniq',
            ),
        ),
        migrations.AddConstraint(
            model_name='inventory',
            constraint=models.UniqueConstraint(
                condition=models.Q(('is_deleted', False), ('warehouse__isnull', True)),
                fields=('material',),
                name='inventory_live_unassigned_stock_uniq',
            ),
        ),
    ]
