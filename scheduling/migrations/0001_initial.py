import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(
                    default=False,
                    help_text='Designates that this user has all permissions without explicitly assigning them.',
                    verbose_name='superuser status',
                )),
                ('username', models.CharField(
                    error_messages={'unique': 'A user with that username already exists.'},
                    help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.',
                    max_length=150,
                    unique=True,
                    validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                    verbose_name='username',
                )),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(
                    default=False,
                    help_text='Designates whether the user can log into this admin site.',
                    verbose_name='staff status',
                )),
                ('is_active', models.BooleanField(
                    default=True,
                    help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.',
                    verbose_name='active',
                )),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('nickname', models.CharField(blank=True, default='', max_length=30)),
                ('notifications_enabled', models.BooleanField(default=True)),
                ('push_all_enabled', models.BooleanField(default=True)),
                ('push_invite_enabled', models.BooleanField(default=True)),
                ('push_friend_request_enabled', models.BooleanField(default=True)),
                ('push_friend_schedule_enabled', models.BooleanField(default=True)),
                ('push_party_enabled', models.BooleanField(default=True)),
                ('push_my_timetable_reminder_enabled', models.BooleanField(default=True)),
                ('my_timetable_reminder_minutes', models.PositiveIntegerField(default=10)),
                ('groups', models.ManyToManyField(
                    blank=True,
                    help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.',
                    related_name='user_set',
                    related_query_name='user',
                    to='auth.group',
                    verbose_name='groups',
                )),
                ('user_permissions', models.ManyToManyField(
                    blank=True,
                    help_text='Specific permissions for this user.',
                    related_name='user_set',
                    related_query_name='user',
                    to='auth.permission',
                    verbose_name='user permissions',
                )),
            ],
            options={
                'db_table': 'users',
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('server_id', models.BigIntegerField(blank=True, null=True)),
                ('user_id', models.BigIntegerField(blank=True, null=True)),
                ('action', models.CharField(max_length=50)),
                ('details', models.CharField(blank=True, default='', max_length=1000)),
                ('occurred_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'db_table': 'audit_log',
                'indexes': [
                    models.Index(fields=['server_id', 'action', 'occurred_at'], name='audit_server_action_time_idx'),
                    models.Index(fields=['occurred_at'], name='audit_occurred_at_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BlacklistedToken',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('token', models.CharField(max_length=500, unique=True)),
                ('expiry', models.DateTimeField()),
            ],
            options={
                'db_table': 'blacklisted_tokens',
                'indexes': [models.Index(fields=['expiry'], name='blacklisted_expiry_idx')],
            },
        ),
        migrations.CreateModel(
            name='OutboundNotification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('recipient_ids', models.JSONField(default=list)),
                ('notification_type', models.CharField(
                    choices=[
                        ('INVITE', 'Server Invite'),
                        ('FRIEND_REQUEST', 'Friend Request'),
                        ('TIMETABLE', 'Friend Schedule'),
                        ('PARTY', 'Party Recruiting'),
                        ('REMINDER', 'Timetable Reminder'),
                        ('GENERIC', 'Generic'),
                    ],
                    max_length=20,
                )),
                ('title', models.CharField(max_length=200)),
                ('payload', models.TextField(blank=True, default='')),
                ('server_id', models.BigIntegerField(blank=True, null=True)),
                ('status', models.CharField(
                    choices=[
                        ('pending', 'Pending'),
                        ('dispatching', 'Dispatching'),
                        ('sent', 'Sent'),
                        ('failed', 'Failed'),
                    ],
                    default='pending',
                    max_length=20,
                )),
                ('attempts', models.PositiveIntegerField(default=0)),
                ('last_error', models.CharField(blank=True, default='', max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('dispatched_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'outbound_notifications',
                'indexes': [models.Index(fields=['status', 'created_at'], name='outbox_status_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='Server',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50)),
                ('reset_time', models.TimeField()),
                ('reset_paused', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('owner', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='owned_servers',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('members', models.ManyToManyField(
                    blank=True, related_name='joined_servers', to=settings.AUTH_USER_MODEL
                )),
                ('admins', models.ManyToManyField(
                    blank=True, related_name='administered_servers', to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'db_table': 'servers',
                'indexes': [models.Index(fields=['reset_time'], name='servers_reset_time_idx')],
            },
        ),
        migrations.CreateModel(
            name='Game',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('server', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='custom_games',
                    to='scheduling.server',
                )),
            ],
            options={
                'db_table': 'games',
                'constraints': [
                    models.UniqueConstraint(fields=('server', 'name'), name='unique_game_per_server'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TimetableEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slot', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('game', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='timetable_entries',
                    to='scheduling.game',
                )),
                ('server', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='timetable_entries',
                    to='scheduling.server',
                )),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='timetable_entries',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'timetable_entries',
                'indexes': [models.Index(fields=['server', 'slot'], name='timetable_server_slot_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('server', 'user'), name='unique_entry_per_server_user'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Party',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slot', models.DateTimeField()),
                ('capacity', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('creator', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='created_parties',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('game', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='parties',
                    to='scheduling.game',
                )),
                ('server', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='parties',
                    to='scheduling.server',
                )),
            ],
            options={
                'db_table': 'parties',
                'indexes': [models.Index(fields=['server', 'slot'], name='parties_server_slot_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('capacity__gte', 1)), name='party_capacity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PartyParticipant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('party', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='memberships',
                    to='scheduling.party',
                )),
                ('user', models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='party_membership',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'party_participants',
            },
        ),
        migrations.AddField(
            model_name='party',
            name='participants',
            field=models.ManyToManyField(
                blank=True,
                related_name='parties',
                through='scheduling.PartyParticipant',
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('notification_type', models.CharField(
                    choices=[
                        ('INVITE', 'Server Invite'),
                        ('FRIEND_REQUEST', 'Friend Request'),
                        ('TIMETABLE', 'Friend Schedule'),
                        ('PARTY', 'Party Recruiting'),
                        ('REMINDER', 'Timetable Reminder'),
                        ('GENERIC', 'Generic'),
                    ],
                    max_length=20,
                )),
                ('title', models.CharField(max_length=200)),
                ('message', models.CharField(blank=True, default='', max_length=1000)),
                ('read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='notifications',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'notifications',
                'indexes': [models.Index(fields=['user', 'created_at'], name='notif_user_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='PushToken',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('token', models.CharField(max_length=512, unique=True)),
                ('platform', models.CharField(default='web', max_length=32)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='push_tokens',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'push_tokens',
            },
        ),
        migrations.CreateModel(
            name='Friendship',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='friendships',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('friend', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='+',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'friendships',
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'friend'), name='unique_friendship'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FriendNotificationSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('enabled', models.BooleanField(default=True)),
                ('owner', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='friend_settings',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('friend', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='+',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'friend_notification_settings',
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'friend'), name='unique_friend_setting'),
                ],
            },
        ),
    ]
