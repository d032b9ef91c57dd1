from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class Class(db.Model):
    __tablename__ = "classes"

    class_id = db.Column(db.Integer, primary_key=True)
    class_name = db.Column(db.String(100), nullable=False)
    start_day = db.Column(db.Date, nullable=False)
    end_day = db.Column(db.Date, nullable=False)
    is_deactivated = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())

    # Relationships
    trainees = db.relationship("Trainee", backref="class_obj")
    class_modules = db.relationship("ClassModule", backref="class_obj")

    def __repr__(self):
        return f"<Class {self.class_name} ({self.start_day} - {self.end_day})>"


class Trainee(db.Model):
    __tablename__ = "trainees"

    trainee_id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("classes.class_id"), nullable=True)
    username = db.Column(db.String(50), nullable=False)
    fullname = db.Column(db.String(100), nullable=True)
    dob = db.Column(db.Date, nullable=True)
    gender = db.Column(db.String(10), nullable=True)
    email = db.Column(db.String(100), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    facebook = db.Column(db.String(255), nullable=True)
    # Free text as entered historically: "Learning", "Passed", "Drop out", ...
    status = db.Column(db.String(50), nullable=True)
    on_board = db.Column(db.Boolean, nullable=True)
    is_deactivated = db.Column(db.Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Trainee {self.username} class:{self.class_id}>"


class Module(db.Model):
    __tablename__ = "modules"

    module_id = db.Column(db.Integer, primary_key=True)
    module_name = db.Column(db.String(100), nullable=False)
    max_score = db.Column(db.Float, nullable=False)
    passing_score = db.Column(db.Float, nullable=False)

    def __repr__(self):
        return f"<Module {self.module_name} ({self.max_score} pts)>"


class ClassModule(db.Model):
    """Module taught in a class with its contribution weight."""

    __tablename__ = "class_modules"

    class_id = db.Column(db.Integer, db.ForeignKey("classes.class_id"), primary_key=True)
    module_id = db.Column(db.Integer, db.ForeignKey("modules.module_id"), primary_key=True)
    weight_number = db.Column(db.Float, nullable=False, default=1)

    module = db.relationship("Module")

    def __repr__(self):
        return f"<ClassModule class:{self.class_id} module:{self.module_id} x{self.weight_number}>"


class Mark(db.Model):
    __tablename__ = "marks"

    trainee_id = db.Column(db.Integer, db.ForeignKey("trainees.trainee_id"), primary_key=True)
    module_id = db.Column(db.Integer, db.ForeignKey("modules.module_id"), primary_key=True)
    score = db.Column(db.Float, nullable=False, default=0)

    def __repr__(self):
        return f"<Mark trainee:{self.trainee_id} module:{self.module_id} = {self.score}>"


class Attendance(db.Model):
    __tablename__ = "attendances"

    id = db.Column(db.Integer, primary_key=True)
    trainee_id = db.Column(db.Integer, db.ForeignKey("trainees.trainee_id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(5), nullable=True)  # P, A, An, L, Ln, E, En

    __table_args__ = (
        db.UniqueConstraint("trainee_id", "date", name="unique_trainee_attendance_day"),
    )

    def __repr__(self):
        return f"<Attendance trainee:{self.trainee_id} {self.date} {self.status}>"


class Feedback(db.Model):
    __tablename__ = "feedbacks"

    id = db.Column(db.Integer, primary_key=True)
    trainee_id = db.Column(db.Integer, db.ForeignKey("trainees.trainee_id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=db.func.current_timestamp())
    # Content
    topic_content = db.Column(db.Float, nullable=False, default=0)
    topic_objective = db.Column(db.Float, nullable=False, default=0)
    approriate_topic_level = db.Column(db.Float, nullable=False, default=0)
    topic_usefulness = db.Column(db.Float, nullable=False, default=0)
    training_material = db.Column(db.Float, nullable=False, default=0)
    # Trainer
    trainer_knowledge = db.Column(db.Float, nullable=False, default=0)
    subject_coverage = db.Column(db.Float, nullable=False, default=0)
    instruction_and_communicate = db.Column(db.Float, nullable=False, default=0)
    trainer_support = db.Column(db.Float, nullable=False, default=0)
    # Organization
    logistics = db.Column(db.Float, nullable=False, default=0)
    information_to_trainees = db.Column(db.Float, nullable=False, default=0)
    admin_support = db.Column(db.Float, nullable=False, default=0)

    trainee = db.relationship("Trainee")

    def __repr__(self):
        return f"<Feedback trainee:{self.trainee_id} {self.created_at}>"


class BonusAndPunish(db.Model):
    __tablename__ = "bonus_and_punishes"

    id = db.Column(db.Integer, primary_key=True)
    trainee_id = db.Column(db.Integer, db.ForeignKey("trainees.trainee_id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=db.func.current_timestamp())
    score = db.Column(db.Float, nullable=False)  # > 0 bonus, <= 0 penalty
    reason = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f"<BonusAndPunish trainee:{self.trainee_id} {self.score:+}>"
