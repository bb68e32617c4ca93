import api.api_models.group
import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
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
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('admin', 'Admin'), ('faculty', 'Faculty'), ('student', 'Student')], default='student', max_length=20)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
                'swappable': 'AUTH_USER_MODEL',
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='SystemSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('max_faculty_preferences', models.PositiveSmallIntegerField(default=7, help_text='Maximum number of ranked faculty a project may list (priorities 1..N)', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('min_faculty_preferences', models.PositiveSmallIntegerField(default=1, help_text='Minimum number of ranked faculty required to submit preferences', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('min_group_members', models.PositiveSmallIntegerField(default=4, help_text='Minimum active members before a group can be finalized', validators=[django.core.validators.MinValueValidator(1)])),
                ('max_group_members', models.PositiveSmallIntegerField(default=5, help_text='Maximum active members in a group', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('notify_faculty_by_email', models.BooleanField(default=True, help_text='Send an email in addition to the in-app notification when a project is presented')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'System Settings',
                'verbose_name_plural': 'System Settings',
            },
        ),
        migrations.CreateModel(
            name='Faculty',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('department', models.CharField(blank=True, default='', max_length=100)),
                ('designation', models.CharField(blank=True, default='', max_length=100)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='faculty', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Faculty',
            },
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('roll_number', models.CharField(blank=True, default='', max_length=30)),
                ('semester', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='student', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('ADMIN_OVERRIDE', 'Admin Override'), ('CANCEL', 'Cancelled'), ('RECONCILE', 'Reconciled'), ('DISBAND', 'Disbanded')], max_length=20)),
                ('model_name', models.CharField(help_text="'Project' or 'Group'", max_length=100)),
                ('object_id', models.CharField(blank=True, max_length=255, null=True)),
                ('object_repr', models.CharField(max_length=255)),
                ('changes', models.JSONField(blank=True, default=dict)),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, help_text='Acting admin; empty for scheduled repairs', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['-timestamp'], name='api_auditlo_timesta_idx'),
                    models.Index(fields=['model_name', 'object_id'], name='api_auditlo_model_n_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Group',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('version', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(blank=True, default='', max_length=100)),
                ('description', models.CharField(blank=True, default='', max_length=500)),
                ('semester', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('academic_year', models.CharField(default=api.api_models.group.default_academic_year, max_length=7)),
                ('min_members', models.PositiveSmallIntegerField(default=4)),
                ('max_members', models.PositiveSmallIntegerField(default=5)),
                ('status', models.CharField(choices=[('forming', 'Forming'), ('complete', 'Complete'), ('finalized', 'Finalized'), ('locked', 'Locked'), ('disbanded', 'Disbanded')], default='forming', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('finalized_at', models.DateTimeField(blank=True, null=True)),
                ('disbanded_at', models.DateTimeField(blank=True, null=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_groups', to='api.student')),
                ('finalized_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='finalized_groups', to='api.student')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='api_group_status_idx'),
                    models.Index(fields=['semester', 'academic_year'], name='api_group_semeste_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupMembership',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('leader', 'Leader'), ('member', 'Member')], default='member', max_length=10)),
                ('invite_status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('auto-rejected', 'Auto-rejected')], default='pending', max_length=15)),
                ('is_active', models.BooleanField(default=True)),
                ('invited_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.CharField(blank=True, default='', max_length=255)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='api.group')),
                ('invited_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sent_invitations', to='api.student')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='group_memberships', to='api.student')),
            ],
            options={
                'ordering': ['invited_at', 'id'],
                'indexes': [
                    models.Index(fields=['student', 'invite_status'], name='api_groupme_student_idx'),
                    models.Index(fields=['group', 'is_active'], name='api_groupme_group_i_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('group', 'student'), name='unique_group_membership'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('version', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('project_type', models.CharField(blank=True, default='', max_length=30)),
                ('semester', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('academic_year', models.CharField(default=api.api_models.group.default_academic_year, max_length=7)),
                ('status', models.CharField(choices=[('registered', 'Registered'), ('pending_allocation', 'Pending Allocation'), ('pending_admin_allocation', 'Pending Admin Allocation'), ('faculty_allocated', 'Faculty Allocated'), ('active', 'Active'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='registered', max_length=30)),
                ('allocated_by', models.CharField(blank=True, choices=[('candidate_choice', 'Faculty choice'), ('admin_override', 'Admin override')], default='', max_length=20)),
                ('current_faculty_index', models.PositiveSmallIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('faculty', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='supervised_projects', to='api.faculty')),
                ('group', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='project', to='api.group')),
                ('student', models.ForeignKey(help_text='Owner (the submitting student; the leader for group projects)', on_delete=django.db.models.deletion.CASCADE, related_name='projects', to='api.student')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='api_project_status_idx'),
                    models.Index(fields=['faculty', 'status'], name='api_project_faculty_idx'),
                    models.Index(fields=['semester', 'academic_year'], name='api_project_semeste_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FacultyPreference',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('version', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('allocated', 'Allocated'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('current_faculty_index', models.PositiveSmallIntegerField(default=0)),
                ('allocated_by', models.CharField(blank=True, choices=[('candidate_choice', 'Faculty choice'), ('admin_override', 'Admin override')], default='', max_length=20)),
                ('allocated_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.CharField(blank=True, choices=[('capacity_full', 'Capacity full'), ('not_available', 'Not available'), ('not_suitable', 'Not suitable'), ('other', 'Other')], default='', max_length=20)),
                ('rejection_comments', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('allocated_faculty', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='allocated_preferences', to='api.faculty')),
                ('group', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='faculty_preferences', to='api.group')),
                ('project', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='faculty_preference', to='api.project')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='faculty_preferences', to='api.student')),
            ],
            options={
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='api_faculty_status_idx'),
                    models.Index(fields=['allocated_faculty', 'status'], name='api_faculty_allocat_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PreferenceEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('priority', models.PositiveSmallIntegerField(help_text='1 = offered first', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('submitted_at', models.DateTimeField(auto_now_add=True)),
                ('faculty', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='preference_entries', to='api.faculty')),
                ('preference', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='entries', to='api.facultypreference')),
            ],
            options={
                'verbose_name_plural': 'Preference Entries',
                'ordering': ['preference', 'priority'],
                'constraints': [
                    models.UniqueConstraint(fields=('preference', 'priority'), name='unique_preference_priority'),
                    models.UniqueConstraint(fields=('preference', 'faculty'), name='unique_preference_faculty'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AllocationHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('priority', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('action', models.CharField(choices=[('presented', 'Presented'), ('chosen', 'Chosen'), ('passed', 'Passed')], max_length=10)),
                ('comments', models.CharField(blank=True, default='', max_length=500)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('faculty', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocation_history', to='api.faculty')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocation_history', to='api.project')),
            ],
            options={
                'verbose_name_plural': 'Allocation History',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['project', 'action'], name='api_allocat_project_idx'),
                    models.Index(fields=['faculty', 'action'], name='api_allocat_faculty_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FacultyNotification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('allocation_offer', 'Allocation Offer'), ('allocation_change', 'Allocation Change'), ('project_cancelled', 'Project Cancelled')], max_length=30)),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField(max_length=1000)),
                ('dismissed', models.BooleanField(default=False)),
                ('dismissed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('faculty', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to='api.faculty')),
                ('project', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='faculty_notifications', to='api.project')),
            ],
            options={
                'verbose_name': 'Faculty Notification',
                'verbose_name_plural': 'Faculty Notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['faculty', 'dismissed', '-created_at'], name='api_faculty_faculty_idx'),
                    models.Index(fields=['type', 'dismissed'], name='api_faculty_type_idx'),
                ],
            },
        ),
    ]
