import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        ('schools', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Examination',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('exam_type', models.CharField(choices=[('BOT', 'Beginning of Term'), ('MID', 'Mid Term'), ('END', 'End of Term'), ('QUIZ', 'Quiz'), ('ASSIGNMENT', 'Assignment')], default='END', max_length=20)),
                ('exam_date', models.DateField(blank=True, null=True)),
                ('total_marks', models.PositiveIntegerField(default=100)),
                ('pass_marks', models.PositiveIntegerField(default=40)),
                ('classroom', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='examinations', to='academics.classroom')),
                ('school', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='examinations', to='schools.school')),
                ('subject', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='examinations', to='academics.subject')),
                ('term', models.ForeignKey(on_delete=django.db.models.deletion.RESTRICT, related_name='examinations', to='academics.term')),
            ],
            options={
                'ordering': ['-exam_date', 'name'],
                'indexes': [
                    models.Index(fields=['school', 'classroom'], name='exam_school_class_idx'),
                    models.Index(fields=['term', 'exam_type'], name='exam_term_type_idx'),
                    models.Index(fields=['exam_date'], name='exam_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Grading',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_percentage', models.DecimalField(decimal_places=2, max_digits=5)),
                ('to_percentage', models.DecimalField(decimal_places=2, max_digits=5)),
                ('grade', models.CharField(max_length=5)),
                ('comment', models.CharField(blank=True, max_length=100)),
                ('school', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='gradings', to='schools.school')),
            ],
            options={
                'ordering': ['-from_percentage'],
                'indexes': [models.Index(fields=['school'], name='grading_school_idx')],
            },
        ),
        migrations.CreateModel(
            name='CommentBand',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('class_teacher', 'Class Teacher'), ('head_teacher', 'Head Teacher')], max_length=20)),
                ('from_percentage', models.DecimalField(decimal_places=2, max_digits=5)),
                ('to_percentage', models.DecimalField(decimal_places=2, max_digits=5)),
                ('comment', models.TextField()),
                ('school', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comment_bands', to='schools.school')),
            ],
            options={
                'ordering': ['kind', '-from_percentage'],
                'indexes': [models.Index(fields=['school', 'kind'], name='commentband_school_kind_idx')],
            },
        ),
        migrations.CreateModel(
            name='Result',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('marks_obtained', models.DecimalField(decimal_places=2, max_digits=6)),
                ('total_marks', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('percentage', models.DecimalField(decimal_places=2, default=0, max_digits=6)),
                ('grade', models.CharField(blank=True, max_length=5)),
                ('is_passed', models.BooleanField(default=False)),
                ('remarks', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('examination', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='results', to='results.examination')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='results', to='academics.studentprofile')),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='results', to='academics.subject')),
            ],
            options={
                'ordering': ['examination', 'student', 'subject'],
                'indexes': [
                    models.Index(fields=['examination', 'student'], name='result_exam_student_idx'),
                    models.Index(fields=['student'], name='result_student_idx'),
                ],
                'unique_together': {('examination', 'student', 'subject')},
            },
        ),
        migrations.CreateModel(
            name='StudentOverallResult',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('total_marks_obtained', models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                ('total_marks_possible', models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                ('percentage', models.DecimalField(decimal_places=2, default=0, max_digits=6)),
                ('grade', models.CharField(blank=True, max_length=5)),
                ('rank', models.IntegerField(blank=True, null=True)),
                ('is_passed', models.BooleanField(default=False)),
                ('examination', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='overall_results', to='results.examination')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='overall_results', to='academics.studentprofile')),
            ],
            options={
                'ordering': ['rank', 'student'],
                'indexes': [models.Index(fields=['examination', '-percentage'], name='overall_exam_pct_idx')],
                'unique_together': {('examination', 'student')},
            },
        ),
    ]
